# paste_service/utils/rendering.py
from datetime import datetime, timezone

from jinja2 import Environment, select_autoescape

from paste_service.schemas.pastes import PasteInfo

_env = Environment(autoescape=select_autoescape(default=True))

_INFO_HTML = _env.from_string(
    """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <title>Paste</title>
</head>
<body>
  <pre style="word-wrap: break-word; white-space: pre-wrap;
    font-family: 'Fira Mono', monospace; font-size: 16px;">{{ content }}</pre>
  {% if need_qr %}<img src="{{ info.link_qr }}" alt="{{ info.link }}" style="max-width: 280px">{% endif %}
</body>
</html>
"""
)


def iso(ms: int) -> str:
    return datetime.fromtimestamp(ms / 1000, tz=timezone.utc).isoformat().replace("+00:00", "Z")


def _remaining(info: PasteInfo) -> str:
    if info.max_access_n is None:
        return "-"
    remain = max(0, info.max_access_n - info.access_n)
    return str(remain) if remain else "0 (expired)"


def render_info_text(info: PasteInfo, need_qr: bool = False) -> str:
    lines = [
        f"uuid: {info.uuid}",
        f"link: {info.link}",
        f"type: {info.paste_type_label}",
        f"title: {info.title or '-'}",
        f"mime-type: {info.mime_type or '-'}",
        f"size: {info.file_size} bytes ({info.human_readable_size})",
        f"password: {'true' if info.has_password else 'false'}",
        f"remaining read count: {_remaining(info)}",
        f"created at {iso(info.created_at)}",
        f"expired at {iso(info.expired_at)}",
    ]
    if info.upload_pending:
        lines.append("upload pending: true")
    if need_qr:
        lines.append(f"qrcode: {info.link_qr}")
    return "\n".join(lines) + "\n"


def render_info_html(info: PasteInfo, need_qr: bool = False) -> str:
    return _INFO_HTML.render(content=render_info_text(info), info=info, need_qr=need_qr)
