import json
from typing import Iterable, List, Tuple

from config import Config, RenderPolicy


def section_rule(record) -> Tuple[str, RenderPolicy]:
    """
    根据记录来源和关键字选择标题与渲染策略
    """
    if record.source == Config.SOURCE_EXIF:
        return Config.EXIF_LABEL, RenderPolicy.VERBATIM
    return Config.KEYWORD_RULES.get(record.keyword, (record.keyword, RenderPolicy.VERBATIM))


def format_value(value: str, policy: RenderPolicy) -> str:
    """
    能解析为 JSON 时格式化输出，否则原样返回
    """
    if policy is RenderPolicy.JSON_OR_VERBATIM:
        # 嵌套过深的 JSON 会触发 RecursionError，同样按原文输出
        try:
            parsed = json.loads(value)
            return json.dumps(parsed, indent=Config.JSON_INDENT, ensure_ascii=False)
        except (ValueError, RecursionError):
            return value
    return value


def render_section(record) -> str:
    label, policy = section_rule(record)
    return f"--- {label} ---\n{format_value(record.value, policy)}"


def render_header(file_format: str, path) -> str:
    return f"=== {file_format} File: {path} ==="


def render_report(path, result) -> str:
    """
    生成完整的文本报告：文件标题加各段落，按发现顺序排列
    """
    lines = [render_header(result.format, path)]
    lines.extend(render_section(record) for record in result.records)
    return '\n'.join(lines)


def records_to_json(records: Iterable) -> List[dict]:
    """
    结构化输出，供 --json 和界面使用
    """
    items = []
    for record in records:
        label, policy = section_rule(record)
        items.append({
            "label": label,
            "keyword": record.keyword,
            "source": record.source,
            "value": format_value(record.value, policy),
        })
    return items
