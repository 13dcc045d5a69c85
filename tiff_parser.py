import struct
from typing import Optional, Tuple

from charset_decoder import decode_user_comment
from config import Config
from logging_config import setup_logging

logger = setup_logging()

TIFF_MAGIC = 42
BYTE_ORDERS = {b'II': '<', b'MM': '>'}
KNOWN_CHARSETS = (Config.CHARSET_UNICODE, Config.CHARSET_ASCII, Config.CHARSET_JIS)


def _read_tiff_header(data, base: int) -> Optional[Tuple[str, int]]:
    """
    读取 TIFF 头，返回 (字节序, IFD0 偏移)；头部无效时返回 None
    """
    if base < 0 or base + 8 > len(data):
        return None
    order = BYTE_ORDERS.get(data[base:base + 2])
    if order is None:
        return None
    magic, ifd0 = struct.unpack(order + 'HI', data[base + 2:base + 8])
    if magic != TIFF_MAGIC:
        return None
    return order, ifd0


def find_tiff_base(data) -> Optional[int]:
    """
    定位 TIFF 结构起点（标签偏移量都相对于这里）。
    优先查找 "Exif\\0\\0" 标记；WebP 的 EXIF 块可能直接以 TIFF 头开始。
    没有标记但窗口本身以 TIFF 头开始时取 0，这一点比单纯查找标记更宽松。
    """
    pos = data.find(Config.EXIF_MARKER)
    if pos != -1:
        return pos + len(Config.EXIF_MARKER)
    if _read_tiff_header(data, 0) is not None:
        return 0
    return None


def _walk_ifds(data, base: int, order: str, ifd0: int) -> Optional[Tuple[int, int]]:
    """
    按 IFD 结构逐项查找 UserComment，会跟随 Exif 子 IFD 指针。
    返回 (数据长度, 数据绝对位置)。
    """
    pending = [ifd0]
    visited = set()
    entry_format = order + 'HHII'
    while pending:
        offset = pending.pop(0)
        start = base + offset
        if offset in visited or start + 2 > len(data):
            continue
        visited.add(offset)
        (entry_count,) = struct.unpack(order + 'H', data[start:start + 2])
        for index in range(entry_count):
            entry = start + 2 + index * Config.IFD_ENTRY_SIZE
            if entry + Config.IFD_ENTRY_SIZE > len(data):
                break
            tag, _, count, value = struct.unpack(entry_format, data[entry:entry + Config.IFD_ENTRY_SIZE])
            if tag == Config.USER_COMMENT_TAG:
                # 4 字节以内的值直接内联在条目里
                if count <= 4:
                    return count, entry + 8
                return count, base + value
            if tag == Config.EXIF_IFD_POINTER_TAG:
                pending.append(value)
    return None


def _scan_for_tag(data, base: int) -> Optional[Tuple[int, int]]:
    """
    逐字节扫描大端 0x9286，只使用第一次出现的位置
    """
    pos = data.find(struct.pack('>H', Config.USER_COMMENT_TAG), base)
    if pos == -1 or pos + Config.IFD_ENTRY_SIZE > len(data):
        return None
    count, value = struct.unpack('>II', data[pos + 4:pos + 12])
    return count, base + value


def find_user_comment(data, base: int) -> Optional[bytes]:
    """
    返回 UserComment 的原始数据（含字符集头），越界或过短时返回 None
    """
    location = None
    header = _read_tiff_header(data, base)
    if header is not None:
        location = _walk_ifds(data, base, *header)
    if location is None:
        location = _scan_for_tag(data, base)
    if location is None:
        return None

    data_len, position = location
    if data_len < Config.CHARSET_ID_LENGTH:
        logger.debug(f"UserComment 长度过短: {data_len}")
        return None
    if position + data_len > len(data):
        logger.debug(f"UserComment 数据越界: {position} + {data_len} > {len(data)}")
        return None
    return bytes(data[position:position + data_len])


def split_charset(payload: bytes) -> Tuple[bytes, bytes]:
    """
    拆分字符集标识与正文。
    部分编码器会在字符集前多写 4 个 0 字节，此时从第 4 字节开始读取。
    仅当第 4~12 字节是已知字符集名时才按此处理，全 0（未定义）字符集不受影响。
    """
    if (payload[:4] == b'\x00' * 4 and len(payload) >= 12
            and payload[4:12] in KNOWN_CHARSETS):
        return payload[4:12], payload[12:]
    return payload[:8], payload[8:]


def extract_user_comment(data) -> Optional[str]:
    """
    从包含 EXIF/TIFF 结构的字节窗口中提取 UserComment 文本
    """
    base = find_tiff_base(data)
    if base is None:
        return None
    payload = find_user_comment(data, base)
    if payload is None:
        return None
    charset_id, text = split_charset(payload)
    return decode_user_comment(charset_id, text)
