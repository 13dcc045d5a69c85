import mmap
import os
from contextlib import contextmanager
from pathlib import Path

from logging_config import setup_logging

logger = setup_logging()


class ImageProcessor:
    @staticmethod
    def validate_image(image: any) -> bool:
        """
        验证图片输入是否合法
        """
        if image is None:
            return False
        if isinstance(image, (str, Path)):
            return Path(image).is_file()
        return False

    @staticmethod
    @contextmanager
    def open_buffer(file_path):
        """
        以只读方式映射整个文件，退出上下文时自动释放。
        空文件无法 mmap，直接返回空字节串。
        """
        with open(file_path, 'rb') as f:
            size = os.fstat(f.fileno()).st_size
            if size == 0:
                yield b''
                return
            with mmap.mmap(f.fileno(), 0, access=mmap.ACCESS_READ) as view:
                logger.debug(f"已映射文件 {file_path} ({size} 字节)")
                yield view
