from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

import numpy as np
import torch
from PIL import Image, ImageColor


RGBA = tuple[int, int, int, int]


def parse_color(raw: str | None, *, default: RGBA = (0, 0, 0, 255)) -> RGBA:
    """Parse any CSS-style color Pillow understands (#rgb, #rrggbbaa, rgb(), names)."""

    if raw is None:
        return default
    value = raw.strip()
    if not value or value == "none":
        return (0, 0, 0, 0)
    try:
        rgb = ImageColor.getrgb(value)
    except ValueError as exc:
        raise ValueError(f"unsupported color `{raw}`") from exc
    if len(rgb) == 4:
        return (rgb[0], rgb[1], rgb[2], rgb[3])
    return (rgb[0], rgb[1], rgb[2], 255)


@dataclass
class DrawingSurface:
    """RGBA uint8 tensor (height, width, 4) that primitives are painted onto."""

    width: int
    height: int
    background: str = "#ffffff"
    pixels: torch.Tensor = field(init=False, repr=False)

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError("surface width/height must be > 0")
        self.pixels = torch.zeros((self.height, self.width, 4), dtype=torch.uint8)
        self.clear()

    def clear(self, color: str | None = None) -> None:
        r, g, b, a = parse_color(color or self.background)
        self.pixels[:, :, 0] = r
        self.pixels[:, :, 1] = g
        self.pixels[:, :, 2] = b
        self.pixels[:, :, 3] = a

    def to_image(self) -> Image.Image:
        return Image.fromarray(self.pixels.cpu().numpy())

    def save(self, path: str | Path) -> None:
        self.to_image().save(Path(path))

    def blend_rect(self, x: int, y: int, w: int, h: int, color: RGBA) -> None:
        if w <= 0 or h <= 0:
            return
        x0 = max(0, x)
        y0 = max(0, y)
        x1 = min(self.width, x + w)
        y1 = min(self.height, y + h)
        if x1 <= x0 or y1 <= y0:
            return
        alpha = color[3] / 255.0
        if alpha <= 0:
            return
        dst = self.pixels[y0:y1, x0:x1, :3].to(torch.float32)
        src = torch.tensor(color[:3], dtype=torch.float32).view(1, 1, 3)
        out = torch.clamp(src * alpha + dst * (1.0 - alpha), 0, 255).to(torch.uint8)
        self.pixels[y0:y1, x0:x1, :3] = out
        self.pixels[y0:y1, x0:x1, 3] = 255

    def blend_alpha_mask(self, mask: np.ndarray, *, x: int, y: int, color: RGBA) -> None:
        """Composite a solid color through an 8-bit coverage mask placed at (x, y)."""

        h, w = mask.shape
        rgba = np.zeros((h, w, 4), dtype=np.uint8)
        rgba[:, :, 0] = color[0]
        rgba[:, :, 1] = color[1]
        rgba[:, :, 2] = color[2]
        rgba[:, :, 3] = (mask.astype(np.float32) * (color[3] / 255.0)).astype(np.uint8)
        self.blit(rgba, x=x, y=y)

    def blit(self, patch: np.ndarray, *, x: int, y: int) -> None:
        """Source-over composite an RGBA uint8 patch with its top-left corner at (x, y)."""

        h, w = patch.shape[:2]
        if h <= 0 or w <= 0:
            return
        x0 = max(0, x)
        y0 = max(0, y)
        x1 = min(self.width, x + w)
        y1 = min(self.height, y + h)
        if x1 <= x0 or y1 <= y0:
            return
        src = patch[y0 - y : y1 - y, x0 - x : x1 - x]
        src_alpha = src[:, :, 3].astype(np.float32) / 255.0
        if not np.any(src_alpha > 0):
            return

        region = self.pixels[y0:y1, x0:x1]
        dst_rgb = region[:, :, :3].to(torch.float32).cpu().numpy()
        dst_alpha = region[:, :, 3].to(torch.float32).cpu().numpy() / 255.0
        src_rgb = src[:, :, :3].astype(np.float32)

        out_alpha = src_alpha + dst_alpha * (1.0 - src_alpha)
        out_rgb_num = src_rgb * src_alpha[:, :, None] + dst_rgb * dst_alpha[:, :, None] * (1.0 - src_alpha[:, :, None])
        safe = np.where(out_alpha > 1e-6, out_alpha, 1.0)
        out_rgb = out_rgb_num / safe[:, :, None]

        region[:, :, :3] = torch.from_numpy(np.clip(out_rgb, 0, 255).astype(np.uint8))
        region[:, :, 3] = torch.from_numpy(np.clip(out_alpha * 255.0, 0, 255).astype(np.uint8))


class TensorCanvasSupplier:
    """Supplies a fresh surface per render pass."""

    def __init__(self, background: str = "#ffffff") -> None:
        parse_color(background)
        self._background = background

    def supply(self, width: int, height: int) -> DrawingSurface:
        return DrawingSurface(width=int(width), height=int(height), background=self._background)
