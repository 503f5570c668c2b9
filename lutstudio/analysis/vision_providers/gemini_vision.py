"""
Google Gemini provider for LutStudio style analysis.

Sends the reference image with a fixed prompt and asks for a JSON style
profile. Transient service errors are retried with exponential backoff.
"""

import logging
import os
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

import google.generativeai as genai
import numpy as np
from PIL import Image

from ..style_profile import STYLE_PROMPT, StyleAnalysisError, StyleProfile, parse_style_response

logger = logging.getLogger(__name__)

TRANSIENT_STATUS_CODES = (429, 503)


def is_transient_error(error: BaseException) -> bool:
    """True for overload/rate-limit errors worth retrying."""
    for attribute in ('code', 'status'):
        value = getattr(error, attribute, None)
        if isinstance(value, int) and value in TRANSIENT_STATUS_CODES:
            return True
    return '503' in str(error)


class GeminiStyleProvider:
    """Google Gemini implementation of the style analysis call."""

    def __init__(self, config: Dict, model: Optional[Any] = None,
                 sleep: Callable[[float], None] = time.sleep):
        """
        Initialize Gemini provider.

        Args:
            config: The ``style_analysis`` configuration section
            model: Pre-built model object; when None a GenerativeModel is created
            sleep: Function used to wait between retries
        """
        self.config = config
        self.name = "gemini"
        self._sleep = sleep

        if model is None:
            api_key = config.get('api_key')
            if not api_key or str(api_key).startswith('${'):
                api_key = os.environ.get('GEMINI_API_KEY')
            if not api_key:
                raise ValueError("Gemini API key not provided")

            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(config.get('model', 'gemini-2.0-flash'))
        self.model = model

        # Safety settings
        self.safety_settings = self._configure_safety()

        # Retry options
        self.max_retries = max(1, int(config.get('max_retries', 3)))
        self.backoff_base = float(config.get('backoff_base', 1.0))

        # Processing options
        self.max_image_dimension = int(config.get('max_image_dimension', 1024))
        self.generation_config = {
            'temperature': config.get('temperature', 0.4),
            'max_output_tokens': config.get('max_output_tokens', 1024),
            'response_mime_type': 'application/json',
        }

    def _configure_safety(self) -> List[Dict]:
        """Configure safety settings based on config."""
        safety_level = self.config.get('safety_settings', 'medium')

        # Map safety levels
        level_map = {
            'low': 'BLOCK_ONLY_HIGH',
            'medium': 'BLOCK_MEDIUM_AND_ABOVE',
            'high': 'BLOCK_LOW_AND_ABOVE'
        }

        threshold = level_map.get(safety_level, 'BLOCK_MEDIUM_AND_ABOVE')

        return [
            {"category": category, "threshold": threshold}
            for category in (
                "HARM_CATEGORY_HARASSMENT",
                "HARM_CATEGORY_HATE_SPEECH",
                "HARM_CATEGORY_SEXUALLY_EXPLICIT",
                "HARM_CATEGORY_DANGEROUS_CONTENT",
            )
        ]

    def prepare_image(self, image: Union[str, Path, Image.Image, np.ndarray]) -> Image.Image:
        """
        Prepare an image for Gemini.

        Args:
            image: Path, PIL image, or (H, W, 3|4) uint8 RGB(A) array

        Returns:
            RGB PIL image no larger than ``max_image_dimension``
        """
        if isinstance(image, (str, Path)):
            img = Image.open(image)
        elif isinstance(image, np.ndarray):
            if image.ndim != 3 or image.shape[2] not in (3, 4):
                raise ValueError(f"Expected an (H, W, 3|4) array, got shape {image.shape}")
            img = Image.fromarray(np.ascontiguousarray(image[..., :3]))
        else:
            img = image

        img = img.convert('RGB')
        img.thumbnail((self.max_image_dimension, self.max_image_dimension))
        return img

    def analyze_style(self, image: Union[str, Path, Image.Image, np.ndarray]) -> StyleProfile:
        """
        Ask Gemini for the style profile of an image.

        Raises:
            StyleAnalysisError: When the response is unusable or retries are exhausted
        """
        prepared = self.prepare_image(image)
        last_error: Optional[BaseException] = None

        for attempt in range(self.max_retries):
            try:
                response = self.model.generate_content(
                    [STYLE_PROMPT, prepared],
                    generation_config=self.generation_config,
                    safety_settings=self.safety_settings
                )
                profile = parse_style_response(response.text)
                logger.info(f"Style analysis returned '{profile.style_name}'")
                return profile

            except StyleAnalysisError:
                raise
            except Exception as e:
                logger.warning(f"Style analysis attempt {attempt + 1} failed: {e}")
                last_error = e
                if not is_transient_error(e):
                    raise StyleAnalysisError(f"Gemini style analysis failed: {e}") from e
                if attempt + 1 < self.max_retries:
                    self._sleep(self.backoff_base * (2 ** attempt))

        raise StyleAnalysisError(
            f"Gemini style analysis failed after {self.max_retries} attempts: {last_error}"
        ) from last_error
