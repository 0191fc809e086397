from __future__ import annotations

import base64
import io
from dataclasses import dataclass
from typing import Sequence, Tuple

from PIL import Image, ImageDraw, ImageFont

from .templates import KillChainTemplate, numbered_phases

CANVAS_SIZE = (800, 600)
BACKGROUND = "#f8fafc"
BORDER = "#374151"
TEXT_COLOR = "#ffffff"
PHASE_COLORS = (
    "#ef4444",
    "#f97316",
    "#eab308",
    "#22c55e",
    "#06b6d4",
    "#8b5cf6",
    "#ec4899",
    "#f59e0b",
    "#10b981",
    "#6366f1",
)


@dataclass(frozen=True)
class BoxLayout:
    width: int = 140
    height: int = 60
    spacing: int = 20
    start_x: int = 50
    start_y: int = 50
    per_row: int = 3

    def position(self, index: int) -> Tuple[int, int]:
        row, col = divmod(index, self.per_row)
        x = self.start_x + col * (self.width + self.spacing)
        y = self.start_y + row * (self.height + self.spacing * 2)
        return x, y


def _wrap(draw: ImageDraw.ImageDraw, text: str, font, max_width: int) -> list:
    lines: list = []
    current = ""
    for word in text.split():
        candidate = f"{current} {word}".strip()
        if draw.textlength(candidate, font=font) <= max_width or not current:
            current = candidate
        else:
            lines.append(current)
            current = word
    if current:
        lines.append(current)
    return lines


def render_steps(steps: Sequence[str], layout: BoxLayout = BoxLayout()) -> bytes:
    """Dessine une boîte colorée par phase et renvoie le PNG."""
    image = Image.new("RGB", CANVAS_SIZE, BACKGROUND)
    draw = ImageDraw.Draw(image)
    font = ImageFont.load_default()

    for index, step in enumerate(steps):
        x, y = layout.position(index)
        box = (x, y, x + layout.width, y + layout.height)
        draw.rounded_rectangle(
            box,
            radius=8,
            fill=PHASE_COLORS[index % len(PHASE_COLORS)],
            outline=BORDER,
            width=2,
        )
        lines = _wrap(draw, step, font, layout.width - 12)
        line_height = 12
        top = y + (layout.height - line_height * len(lines)) / 2
        for offset, line in enumerate(lines):
            text_x = x + (layout.width - draw.textlength(line, font=font)) / 2
            draw.text(
                (text_x, top + offset * line_height),
                line,
                fill=TEXT_COLOR,
                font=font,
            )
        if index + 1 < len(steps) and (index + 1) % layout.per_row:
            arrow_y = y + layout.height / 2
            draw.line(
                (x + layout.width, arrow_y, x + layout.width + layout.spacing, arrow_y),
                fill=BORDER,
                width=2,
            )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG")
    return buffer.getvalue()


def render_template(template: KillChainTemplate) -> bytes:
    return render_steps(numbered_phases(template))


def to_data_url(png_bytes: bytes) -> str:
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


def from_data_url(data_url: str) -> bytes:
    prefix = "data:image/png;base64,"
    if not data_url.startswith(prefix):
        raise ValueError("Le diagramme n'est pas une image PNG embarquée.")
    return base64.b64decode(data_url[len(prefix):])
