import logging
import os
import tempfile
from enum import Enum
from types import MappingProxyType


class RenderPolicy(Enum):
    VERBATIM = "verbatim"
    JSON_OR_VERBATIM = "json_or_verbatim"


class Config:
    # 容器签名
    PNG_SIGNATURE = b'\x89PNG\r\n\x1a\n'
    RIFF_MAGIC = b'RIFF'
    WEBP_MAGIC = b'WEBP'
    JPEG_SOI = b'\xff\xd8\xff'
    FTYP_BOX = b'ftyp'
    AVIF_BRANDS = (b'avif', b'avis')

    # PNG / RIFF 块结构
    PNG_HEADER_LENGTH = 8
    CHUNK_CRC_SIZE = 4
    RIFF_HEADER_LENGTH = 12

    # EXIF / TIFF
    EXIF_MARKER = b'Exif\x00\x00'
    USER_COMMENT_TAG = 0x9286
    EXIF_IFD_POINTER_TAG = 0x8769
    IFD_ENTRY_SIZE = 12
    EXIF_SEARCH_WINDOW = 64 * 1024  # EXIF 通常位于文件头附近
    MAX_UTF16_UNITS = 5000

    # UserComment 字符集标识（8 字节）
    CHARSET_UNICODE = b'UNICODE\x00'
    CHARSET_ASCII = b'ASCII\x00\x00\x00'
    CHARSET_JIS = b'JIS\x00\x00\x00\x00\x00'
    CHARSET_UNDEFINED = b'\x00' * 8
    CHARSET_ID_LENGTH = 8

    # 关键字 -> (标题, 渲染策略)
    KEYWORD_RULES = MappingProxyType({
        'Description': ('NovelAI [Prompt]', RenderPolicy.VERBATIM),
        'Comment': ('NovelAI [Settings]', RenderPolicy.JSON_OR_VERBATIM),
        'parameters': ('Stable Diffusion (A1111)', RenderPolicy.VERBATIM),
        'generation_data': ('ComfyUI [Generation Data]', RenderPolicy.JSON_OR_VERBATIM),
        'prompt': ('prompt', RenderPolicy.VERBATIM),
        'workflow': ('workflow', RenderPolicy.VERBATIM),
    })
    EXIF_LABEL = 'EXIF UserComment'
    SOURCE_TEXT_CHUNK = 'tEXt'
    SOURCE_EXIF = 'EXIF'
    JSON_INDENT = 2

    # 日志相关
    # 日志写入系统临时目录，不在当前工作目录留下文件
    LOG_FILE = os.path.join(tempfile.gettempdir(), 'sd_metadata.log')
    LOG_MAX_BYTES = 1 * 1024 * 1024  # 1MB
    LOG_BACKUP_COUNT = 5
    LOG_CONSOLE_LEVEL = logging.WARNING

    # 界面相关
    DEFAULT_PORT = 8080
    MAX_THREADS = 4
