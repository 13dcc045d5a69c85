import gradio as gr
from config import Config
from image_processor import ImageProcessor
from logging_config import setup_logging
from metadata_extractor import MetadataExtractor
from metadata_renderer import records_to_json, render_report

logger = setup_logging()


def inspect_image(file_path):
    """
    解析上传的图片，返回 (文本报告, 结构化元数据)
    """
    if not ImageProcessor.validate_image(file_path):
        return "", {"error": "文件不存在或无效"}
    try:
        result = MetadataExtractor.extract_file(file_path)
    except OSError as e:
        logger.exception("元数据解析错误")
        return "", {"error": f"处理失败: {str(e)}"}
    if not result.supported:
        return "", {"message": "不支持的文件格式"}
    report = render_report(file_path, result)
    if not result.records:
        return report, {"message": "未找到提示词相关元数据"}
    return report, {"format": result.format, "records": records_to_json(result.records)}


class GradioInterface:
    def __init__(self):
        self.demo = self._create_interface()

    def _create_metadata_tab(self):
        """
        创建图片元数据探测器标签页
        """
        with gr.Tab("元数据探测器"):
            with gr.Row():
                with gr.Column(scale=1):
                    img_input = gr.File(
                        label="上传图片（支持PNG/WebP/JPEG/AVIF）",
                        file_types=[".png", ".webp", ".jpg", ".jpeg", ".avif"],
                        type="filepath"
                    )
                with gr.Column(scale=1):
                    report_output = gr.Textbox(
                        label="报告",
                        lines=20,
                        interactive=False
                    )
                    meta_output = gr.JSON(
                        label="元数据"
                    )
                    img_input.change(
                        fn=inspect_image,
                        inputs=[img_input],
                        outputs=[report_output, meta_output]
                    )

    def _create_interface(self) -> gr.Blocks:
        """
        创建Gradio整体界面
        """
        with gr.Blocks(title="SD元数据查看器") as demo:
            gr.Markdown("# 🔍 SD元数据查看器")
            with gr.Tabs():
                self._create_metadata_tab()
            gr.Markdown(
                f"<div style='text-align: center; margin-top: 20px;'>"
                f"Gradio {gr.__version__}</div>"
            )
        return demo

    def launch(self, server_port: int = Config.DEFAULT_PORT):
        """
        启动Gradio界面
        """
        self.demo.launch(
            server_port=server_port,
            server_name="127.0.0.1",
            show_error=True,
            share=False,
            inbrowser=True,
            max_threads=Config.MAX_THREADS
        )
