"""
Caption font catalogue.

One system font plus a few bold display fonts fetched from the Google
Fonts repository into a local fonts directory, so nothing has to be
installed system-wide. The overlay pass points libass at that directory.
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import requests
from loguru import logger

DEFAULT_FONTS_DIR = Path(__file__).parent.parent.parent / "assets" / "fonts"
FALLBACK_FONT = "Arial"


@dataclass(frozen=True)
class FontSpec:
    """A catalogue entry. System fonts have no file or URL."""
    name: str
    filename: Optional[str] = None
    url: Optional[str] = None

    @property
    def is_system(self) -> bool:
        return self.filename is None


FONT_CATALOG = [
    FontSpec("Arial Black"),
    FontSpec(
        "Poppins Bold", "Poppins-Bold.ttf",
        "https://github.com/google/fonts/raw/main/ofl/poppins/Poppins-Bold.ttf"
    ),
    FontSpec(
        "Montserrat Bold", "Montserrat-Bold.ttf",
        "https://github.com/google/fonts/raw/main/ofl/montserrat/Montserrat-Bold.ttf"
    ),
    FontSpec(
        "Rubik Bold", "Rubik-Bold.ttf",
        "https://github.com/google/fonts/raw/main/ofl/rubik/Rubik-Bold.ttf"
    ),
]


@dataclass(frozen=True)
class FontChoice:
    """The font selected for one job."""
    name: str
    path: Optional[str] = None

    @property
    def fonts_dir(self) -> Optional[str]:
        return str(Path(self.path).parent) if self.path else None


class FontCatalog:
    """Resolves which catalogue fonts are usable on this machine."""

    DOWNLOAD_TIMEOUT = 30

    def __init__(self, fonts_dir: Optional[str] = None, catalog: Optional[List[FontSpec]] = None):
        self.fonts_dir = Path(fonts_dir or os.getenv("RENDER_FONTS_DIR") or DEFAULT_FONTS_DIR)
        self.catalog = catalog if catalog is not None else FONT_CATALOG

    def font_path(self, spec: FontSpec) -> Optional[Path]:
        return None if spec.is_system else self.fonts_dir / spec.filename

    def ensure_downloaded(self) -> List[str]:
        """
        Download any missing catalogue fonts.

        Returns:
            Names of fonts that are present after the run
        """
        self.fonts_dir.mkdir(parents=True, exist_ok=True)
        present = []

        for spec in self.catalog:
            if spec.is_system:
                present.append(spec.name)
                continue

            target = self.font_path(spec)
            if target.exists():
                logger.debug(f"Font already present: {spec.name}")
                present.append(spec.name)
                continue

            logger.info(f"Downloading font {spec.name}...")
            try:
                response = requests.get(spec.url, timeout=self.DOWNLOAD_TIMEOUT)
                response.raise_for_status()
                target.write_bytes(response.content)
                present.append(spec.name)
                logger.success(f"Font downloaded: {target}")
            except (requests.RequestException, OSError) as e:
                logger.error(f"Failed to download font {spec.name}: {e}")
                if target.exists():
                    target.unlink()

        return present

    def available(self) -> List[FontChoice]:
        """Fonts usable right now; falls back to Arial when none are."""
        choices = []
        for spec in self.catalog:
            if spec.is_system:
                choices.append(FontChoice(spec.name))
                continue
            path = self.font_path(spec)
            if path.exists():
                choices.append(FontChoice(spec.name, str(path)))

        if not choices:
            logger.warning(f"No caption fonts available, using {FALLBACK_FONT}")
            choices.append(FontChoice(FALLBACK_FONT))
        return choices
