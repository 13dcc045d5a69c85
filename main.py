import argparse
import json
import sys

from config import Config
from logging_config import setup_logging
from metadata_extractor import MetadataExtractor
from metadata_renderer import records_to_json, render_report

logger = setup_logging()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='sd-metadata',
        description="读取 PNG/WebP/JPEG/AVIF 图片中嵌入的 AI 生成元数据"
    )
    parser.add_argument('images', nargs='*', metavar='IMAGE', help="图片文件路径")
    parser.add_argument('--json', action='store_true', help="以 JSON 格式输出")
    parser.add_argument('--gui', action='store_true', help="启动 Gradio 界面")
    parser.add_argument('--port', type=int, default=Config.DEFAULT_PORT, help="界面端口")
    return parser


def print_file(path: str, as_json: bool) -> bool:
    """
    输出单个文件的元数据，读取失败时返回 False
    """
    try:
        result = MetadataExtractor.extract_file(path)
    except OSError as e:
        logger.error(f"读取文件失败 {path}: {e}")
        print(f"Error: {e}", file=sys.stderr)
        return False

    if not result.supported:
        print(f"Unsupported file format: {path}", file=sys.stderr)
        return True

    if as_json:
        document = {
            "path": path,
            "format": result.format,
            "records": records_to_json(result.records),
        }
        print(json.dumps(document, indent=Config.JSON_INDENT, ensure_ascii=False))
    else:
        print(render_report(path, result))
    return True


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.gui:
        # 仅在需要时导入 gradio
        from gradio_interface import GradioInterface
        try:
            GradioInterface().launch(server_port=args.port)
        except Exception:
            logger.exception("程序启动失败")
            raise
        return 0

    if not args.images:
        parser.error("至少需要一个图片文件路径")

    ok = True
    for path in args.images:
        ok = print_file(path, args.json) and ok
    return 0 if ok else 1


if __name__ == "__main__":
    sys.exit(main())
