import struct
from typing import List, NamedTuple

from config import Config
from image_processor import ImageProcessor
from logging_config import setup_logging
from tiff_parser import extract_user_comment

logger = setup_logging()

FORMAT_PNG = 'PNG'
FORMAT_WEBP = 'WebP'
FORMAT_JPEG = 'JPEG'
FORMAT_AVIF = 'AVIF'
FORMAT_UNKNOWN = 'Unknown'


class TextRecord(NamedTuple):
    keyword: str
    value: str
    source: str = Config.SOURCE_TEXT_CHUNK


class ExtractionResult(NamedTuple):
    format: str
    records: List[TextRecord]

    @property
    def supported(self) -> bool:
        return self.format != FORMAT_UNKNOWN


class MetadataExtractor:
    @staticmethod
    def sniff_format(data) -> str:
        """
        根据文件头判断容器格式，按 PNG、WebP、JPEG、AVIF 的顺序匹配
        """
        if len(data) >= 8 and data[:8] == Config.PNG_SIGNATURE:
            return FORMAT_PNG
        if len(data) >= 12 and data[:4] == Config.RIFF_MAGIC and data[8:12] == Config.WEBP_MAGIC:
            return FORMAT_WEBP
        if len(data) >= 3 and data[:3] == Config.JPEG_SOI:
            return FORMAT_JPEG
        if len(data) >= 12 and data[4:8] == Config.FTYP_BOX and data[8:12] in Config.AVIF_BRANDS:
            return FORMAT_AVIF
        return FORMAT_UNKNOWN

    @staticmethod
    def _parse_png_metadata(data) -> List[TextRecord]:
        """
        遍历 PNG 块，提取 tEXt 中的关键字和值
        """
        records = []
        offset = Config.PNG_HEADER_LENGTH
        while offset + 8 < len(data):
            (length,) = struct.unpack('>I', data[offset:offset + 4])
            chunk_type = data[offset + 4:offset + 8]
            data_start = offset + 8
            next_chunk = data_start + length + Config.CHUNK_CRC_SIZE
            if next_chunk > len(data):
                logger.debug(f"PNG 块 {chunk_type!r} 超出文件长度，停止解析")
                break

            if chunk_type == b'tEXt':
                content = data[data_start:data_start + length]
                parts = content.split(b'\x00', 1)
                if len(parts) == 2:
                    try:
                        key = parts[0].decode('utf-8')
                    except UnicodeDecodeError:
                        logger.debug("tEXt 关键字不是有效的 UTF-8，已跳过")
                    else:
                        try:
                            value = parts[1].decode('utf-8')
                        except UnicodeDecodeError:
                            value = ''
                        records.append(TextRecord(key, value))
            offset = next_chunk
        return records

    @staticmethod
    def _parse_exif_metadata(window) -> List[TextRecord]:
        """
        从 EXIF 数据中提取 UserComment
        """
        comment = extract_user_comment(window)
        if comment is None:
            return []
        return [TextRecord('UserComment', comment, Config.SOURCE_EXIF)]

    @staticmethod
    def _parse_webp_metadata(data) -> List[TextRecord]:
        """
        遍历 RIFF 子块，只处理第一个 EXIF 块
        """
        offset = Config.RIFF_HEADER_LENGTH
        while offset + 8 <= len(data):
            chunk_type = data[offset:offset + 4]
            (size,) = struct.unpack('<I', data[offset + 4:offset + 8])
            data_start = offset + 8
            if data_start + size > len(data):
                logger.debug(f"WebP 块 {chunk_type!r} 超出文件长度，停止解析")
                break
            if chunk_type == b'EXIF':
                return MetadataExtractor._parse_exif_metadata(data[data_start:data_start + size])
            offset = data_start + size
            if size % 2 == 1:  # RIFF 块按偶数长度填充
                offset += 1
        return []

    @staticmethod
    def extract(data) -> ExtractionResult:
        """
        识别格式并按发现顺序返回文本记录
        """
        file_format = MetadataExtractor.sniff_format(data)
        if file_format == FORMAT_PNG:
            records = MetadataExtractor._parse_png_metadata(data)
        elif file_format == FORMAT_WEBP:
            records = MetadataExtractor._parse_webp_metadata(data)
        elif file_format in (FORMAT_JPEG, FORMAT_AVIF):
            records = MetadataExtractor._parse_exif_metadata(data[:Config.EXIF_SEARCH_WINDOW])
        else:
            records = []
        return ExtractionResult(file_format, records)

    @staticmethod
    def extract_file(file_path) -> ExtractionResult:
        """
        映射文件并提取元数据，文件读取错误会直接抛出
        """
        with ImageProcessor.open_buffer(file_path) as data:
            result = MetadataExtractor.extract(data)
        logger.debug(f"{file_path}: 格式 {result.format}，共 {len(result.records)} 条记录")
        return result
