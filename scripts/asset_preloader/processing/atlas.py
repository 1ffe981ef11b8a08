"""
Sprite atlas slicing: cuts one sub-image per named rectangle out of a sheet.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional
from PIL import Image

from ..schema import AtlasEntry
from ..utils.image import ImageUtils

logger = logging.getLogger(__name__)


@dataclass
class SliceResult:
    """Result of slicing an atlas image."""
    images: Dict[str, Image.Image] = field(default_factory=dict)
    skipped: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.images)


class AtlasSlicer:
    """Produces independent sub-images from an atlas sheet and its entries."""

    def __init__(self, convert_rgba: bool = True):
        """
        Args:
            convert_rgba: Convert the sheet to RGBA before cropping so every
                sub-image shares one mode
        """
        self.convert_rgba = convert_rgba

    def slice(self, image: Image.Image, entries: List[AtlasEntry]) -> SliceResult:
        """
        Cut ``image`` into one sub-image per entry, keyed by entry name.

        Entries whose rectangle falls outside the sheet are skipped with a
        warning. When two entries share a name, the first one is kept.
        """
        sheet = ImageUtils.ensure_rgba(image) if self.convert_rgba else image
        result = SliceResult()

        for entry in entries:
            error = self.validate_entry(sheet, entry)
            if error:
                logger.warning(error)
                result.skipped.append(entry.name)
                result.warnings.append(error)
                continue

            if entry.name in result.images:
                message = f"Duplicate atlas entry '{entry.name}', keeping the first one"
                logger.warning(message)
                result.warnings.append(message)
                continue

            region = ImageUtils.crop_region(sheet, entry.box)
            if ImageUtils.is_fully_transparent(region):
                logger.debug(f"Atlas entry '{entry.name}' is completely transparent")
            result.images[entry.name] = region

        return result

    def validate_entry(self, image: Image.Image, entry: AtlasEntry) -> Optional[str]:
        """Return an error message if the entry cannot be cut from the image."""
        if entry.width <= 0 or entry.height <= 0:
            return f"Atlas entry '{entry.name}' has invalid size {entry.width}x{entry.height}"

        if not ImageUtils.fits(image, entry.box):
            return (
                f"Atlas entry '{entry.name}' at ({entry.x}, {entry.y}) size "
                f"{entry.width}x{entry.height} exceeds atlas bounds {image.width}x{image.height}"
            )

        return None
