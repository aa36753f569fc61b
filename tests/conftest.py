"""
Pytest Configuration and Shared Fixtures

This file contains pytest configuration and fixtures that are available
to all test modules.
"""

from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pytest

from vocab_ocr.config_loader import Config, OCRModuleConfig, PreprocessConfig


class FakeEngine:
    """Recognition engine double driven by a handler function.

    The handler receives ``(image, language, options)`` and returns the
    engine output. Returning an exception instance makes the call raise it.
    Every call is recorded in ``calls``.
    """

    def __init__(self, handler: Callable[..., Any]):
        self.handler = handler
        self.calls: List[Dict[str, Any]] = []

    async def recognize(self, image, language, options, progress_callback=None):
        self.calls.append({"image": image, "language": language, "options": dict(options)})
        if progress_callback is not None:
            progress_callback(0.5, "recognizing text")
        result = self.handler(image, language, options)
        if isinstance(result, BaseException):
            raise result
        return result


def sequence_handler(responses: List[Any]) -> Callable[..., Any]:
    """Handler returning the given responses in order (last one repeats)."""
    state = {"index": 0}

    def handler(image, language, options):
        index = min(state["index"], len(responses) - 1)
        state["index"] += 1
        return responses[index]

    return handler


def word(text: str, confidence: float, bbox: Optional[tuple] = None) -> Dict[str, Any]:
    """Engine word mapping."""
    result: Dict[str, Any] = {"text": text, "confidence": confidence}
    if bbox is not None:
        result["bbox"] = dict(zip(("x0", "y0", "x1", "y1"), bbox))
    return result


def line(text: str, words: List[Dict[str, Any]], bbox: Optional[tuple] = None) -> Dict[str, Any]:
    """Engine line mapping."""
    result: Dict[str, Any] = {"text": text, "words": words}
    if bbox is not None:
        result["bbox"] = dict(zip(("x0", "y0", "x1", "y1"), bbox))
    return result


@pytest.fixture
def fake_engine():
    """Factory for FakeEngine instances."""
    return FakeEngine


@pytest.fixture
def make_sequence_handler():
    """Factory for handlers that replay a list of responses."""
    return sequence_handler


@pytest.fixture
def make_word():
    """Factory for engine word mappings."""
    return word


@pytest.fixture
def make_line():
    """Factory for engine line mappings."""
    return line


@pytest.fixture
def white_image():
    """Fixture providing a white 60x200 RGB image."""
    return np.full((60, 200, 3), 255, dtype=np.uint8)


@pytest.fixture
def no_rotation_config():
    """Default configuration with orientation detection disabled."""
    return Config(ocr=OCRModuleConfig(preprocessing=PreprocessConfig(auto_rotate=False)))
