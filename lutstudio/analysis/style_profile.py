"""
Style profile of a reference image.

The profile (a two-word style name, a short description and a palette of
hex colors) is display data only; nothing in the pixel pipeline reads it.
"""

import json
import logging
import re
from concurrent.futures import Future, ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

logger = logging.getLogger(__name__)

STYLE_PROMPT = """Analyze the color grading and visual style of this image. Provide:
1. A creative style name (MUST be exactly 2 words, e.g., "Muted Nordic", "Neon Cyberpunk").
2. A brief 2-sentence description of the color profile (highlights, shadows, saturation).
3. A list of 5 dominant hex color codes.
Respond with a JSON object with the keys "styleName", "description" and "palette"."""

PALETTE_SIZE = 5

_HEX_COLOR = re.compile(r'^#?([0-9a-fA-F]{6})$')


class StyleAnalysisError(RuntimeError):
    """Style analysis failed or returned an unusable response."""


@dataclass(frozen=True)
class StyleProfile:
    """Descriptive style of a reference image."""
    style_name: str
    description: str = ""
    palette: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'styleName': self.style_name,
            'description': self.description,
            'palette': list(self.palette),
        }


def normalize_style_name(name: str) -> str:
    """
    Force a style name to exactly two words.

    Longer names keep their first two words; a single word gets " Look"
    appended, and an empty name becomes "Custom Look".
    """
    words = name.split()
    if len(words) >= 2:
        return ' '.join(words[:2])
    return f"{words[0] if words else 'Custom'} Look"


def normalize_palette(palette: Any) -> List[str]:
    """Keep valid ``#RRGGBB`` colors, upper-cased, at most five."""
    if not isinstance(palette, (list, tuple)):
        return []

    colors = []
    for entry in palette:
        match = _HEX_COLOR.match(entry.strip()) if isinstance(entry, str) else None
        if match:
            colors.append('#' + match.group(1).upper())
        if len(colors) == PALETTE_SIZE:
            break
    return colors


def parse_style_response(response: Union[str, Dict[str, Any]]) -> StyleProfile:
    """
    Build a StyleProfile from the model's JSON answer.

    Raises:
        StyleAnalysisError: If the text is not JSON or has no style name
    """
    if isinstance(response, str):
        try:
            data = json.loads(response or "{}")
        except json.JSONDecodeError as e:
            raise StyleAnalysisError(f"Style response is not valid JSON: {e}") from e
    else:
        data = response

    if not isinstance(data, dict) or not data.get('styleName'):
        raise StyleAnalysisError("Invalid response structure: missing styleName")

    return StyleProfile(
        style_name=normalize_style_name(str(data['styleName'])),
        description=str(data.get('description') or '').strip(),
        palette=normalize_palette(data.get('palette')),
    )


class StyleAnalyzer:
    """
    Runs a style provider in the background.

    ``submit`` never blocks: it returns a Future resolving to a
    StyleProfile, or failing with the provider's error.
    """

    def __init__(self, provider, max_workers: int = 1):
        self.provider = provider
        self.executor = ThreadPoolExecutor(
            max_workers=max_workers,
            thread_name_prefix="LutStudio-Style"
        )

    def submit(self, image: Any,
               callback: Optional[Callable[[Optional[StyleProfile], Optional[BaseException]], None]] = None
               ) -> Future:
        """
        Start analysing ``image``.

        Args:
            image: Anything the provider accepts (path, PIL image, RGBA array)
            callback: Called with ``(profile, None)`` or ``(None, error)``
        """
        future = self.executor.submit(self.provider.analyze_style, image)
        if callback is not None:
            def done(f: Future):
                if f.cancelled():
                    return
                error = f.exception()
                try:
                    callback(None if error else f.result(), error)
                except Exception as e:
                    logger.error(f"Style analysis callback failed: {e}")
            future.add_done_callback(done)
        return future

    def shutdown(self, wait: bool = False):
        self.executor.shutdown(wait=wait, cancel_futures=True)
