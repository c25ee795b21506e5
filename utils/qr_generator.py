# =============================================================================
# 🧠 QR image rendering for voucher payloads
# -----------------------------------------------------------------------------
# PNG via qrcode + Pillow, optional caption under the code.
# =============================================================================

from __future__ import annotations

from io import BytesIO
from typing import Optional

import qrcode
import qrcode.image.styledpil
import qrcode.image.styles.colormasks as mask
import qrcode.image.styles.moduledrawers as mod
from qrcode.constants import ERROR_CORRECT_M
from PIL import Image, ImageDraw, ImageFont, ImageOps

FOREGROUND = (0, 0, 0)
BACKGROUND = (255, 255, 255)
CAPTION_COLOR = (17, 24, 39)


def _caption(img: Image.Image, text: str) -> Image.Image:
    padding = 60
    framed = Image.new("RGBA", (img.width, img.height + padding), BACKGROUND)
    framed.paste(img, (0, 0))

    draw = ImageDraw.Draw(framed)
    try:
        font = ImageFont.truetype("arial.ttf", 28)
    except OSError:
        font = ImageFont.load_default()

    text_w = draw.textlength(text, font=font)
    draw.text(((img.width - text_w) // 2, img.height + 12), text, fill=CAPTION_COLOR, font=font)
    return framed


def generate_qr_png(payload: str, size: int = 512, caption: Optional[str] = None) -> bytes:
    """Renders ``payload`` as PNG bytes, ``caption`` printed below the code."""
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=10,
        border=4,
    )
    qr.add_data(payload)
    qr.make(fit=True)

    img = qr.make_image(
        image_factory=qrcode.image.styledpil.StyledPilImage,
        module_drawer=mod.SquareModuleDrawer(),
        color_mask=mask.SolidFillColorMask(front_color=FOREGROUND, back_color=BACKGROUND),
    ).convert("RGBA")

    img = img.resize((size, size), Image.Resampling.LANCZOS)
    if caption:
        img = _caption(img, caption)
    img = ImageOps.expand(img, border=8, fill=BACKGROUND)

    buffer = BytesIO()
    img.save(buffer, format="PNG")
    return buffer.getvalue()
