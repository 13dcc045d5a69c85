import struct
from typing import Optional

from config import Config
from logging_config import setup_logging

logger = setup_logging()

BOM = 0xFEFF
PRINTABLE_ASCII = range(0x0020, 0x007F)


def _guess_utf16_order(text: bytes) -> tuple:
    """
    推断 UTF-16 字节序，返回 (struct 前缀, 编码名, 正文起始位置)
    """
    if len(text) < 2:
        return '>', 'utf-16-be', 0
    le = text[0] | (text[1] << 8)
    be = (text[0] << 8) | text[1]
    if le == BOM:
        return '<', 'utf-16-le', 2
    if be == BOM:
        return '>', 'utf-16-be', 2
    # 没有 BOM 时，小端解释落在可打印 ASCII 范围内则视为小端
    if le in PRINTABLE_ASCII:
        return '<', 'utf-16-le', 0
    return '>', 'utf-16-be', 0


def decode_utf16_guess(text: bytes) -> Optional[str]:
    """
    按推断的字节序解码 UTF-16 文本。
    最多读取 MAX_UTF16_UNITS 个码元，遇到 0 或中途出现的 BOM 即停止；
    存在孤立代理项时整条记录作废，返回 None。
    """
    order, encoding, start = _guess_utf16_order(text)
    body = text[start:]
    count = min(len(body) // 2, Config.MAX_UTF16_UNITS)

    units = []
    for (unit,) in struct.iter_unpack(order + 'H', body[:count * 2]):
        if unit == 0 or unit == BOM:
            break
        units.append(unit)

    raw = struct.pack('%s%dH' % (order, len(units)), *units)
    try:
        return raw.decode(encoding)
    except UnicodeDecodeError:
        logger.debug("UserComment 含有无效的 UTF-16 代理项，已跳过")
        return None


def _decode_ascii(text: bytes) -> Optional[str]:
    try:
        return text.rstrip(b'\x00').decode('utf-8')
    except UnicodeDecodeError:
        logger.debug("UserComment 不是有效的 ASCII/UTF-8 文本，已跳过")
        return None


def decode_user_comment(charset_id: bytes, text: bytes) -> Optional[str]:
    """
    根据 8 字节字符集标识解码 UserComment 正文。
    无法识别的字符集或解码失败时返回 None（静默丢弃）。
    """
    if charset_id == Config.CHARSET_UNICODE:
        return decode_utf16_guess(text)
    # JIS 仅按 ASCII 兼容处理，不做 ISO-2022-JP 状态机解码
    if charset_id in (Config.CHARSET_ASCII, Config.CHARSET_JIS):
        return _decode_ascii(text)
    if charset_id == Config.CHARSET_UNDEFINED:
        decoded = _decode_ascii(text)
        if decoded and decoded.strip():
            return decoded
        return None
    logger.debug(f"未知的 UserComment 字符集: {charset_id!r}")
    return None
