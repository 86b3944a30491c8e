"""
ImageToText - captioning with a vision encoder-decoder

Two-stage transform per request:
1. Load/decode the image and extract pixel values (processor)
2. For each batch: generate token ids (model), decode them (tokenizer)

Input formats:
- url: http(s) URL, ``data:image/...;base64,`` URL, or local file path
- data + width + height [+ channels]: raw interleaved pixel bytes
"""

import asyncio
import base64
import logging
from enum import Enum
from io import BytesIO
from typing import Any, List, Mapping

import requests
import torch
from PIL import Image

from ...core.errors import ExecutionError
from ...core.performance_tracker import InferenceMetrics, Stopwatch
from .types import InferenceResult

logger = logging.getLogger(__name__)
PREFIX = "[ImageToText]"

IMAGE_FETCH_TIMEOUT = 30

# channels -> PIL mode for raw pixel data
_CHANNEL_MODES = {1: "L", 2: "LA", 3: "RGB", 4: "RGBA"}


class BatchAggregation(str, Enum):
    """How decoded batches become the request output"""
    FIRST = "first"   # first text of the first batch
    ALL = "all"       # every text of every batch, flattened


def load_image(request: Mapping[str, Any]) -> Image.Image:
    """
    Build an RGB PIL image from a request.

    Raises:
        ExecutionError: If the request carries no usable image
    """
    if "url" in request:
        url = request["url"]
        if url.startswith("data:image"):
            image = Image.open(BytesIO(base64.b64decode(url.split(",", 1)[1])))
        elif url.startswith(("http://", "https://")):
            response = requests.get(url, timeout=IMAGE_FETCH_TIMEOUT)
            response.raise_for_status()
            image = Image.open(BytesIO(response.content))
        else:
            image = Image.open(url)
        return image.convert("RGB")

    if "data" not in request:
        raise ExecutionError("Image request needs either 'url' or 'data'")

    channels = request.get("channels") or 4
    mode = _CHANNEL_MODES.get(channels)
    if mode is None:
        raise ExecutionError(f"Unsupported channel count: {channels}")
    size = (int(request["width"]), int(request["height"]))
    return Image.frombytes(mode, size, bytes(request["data"])).convert("RGB")


def _generate(model: Any, pixel_values: torch.Tensor) -> torch.Tensor:
    with torch.no_grad():
        return model.generate(pixel_values=pixel_values)


async def image_to_text(
    request: Mapping[str, Any],
    model: Any,
    tokenizer: Any,
    processor: Any,
    aggregation: BatchAggregation = BatchAggregation.FIRST,
) -> InferenceResult:
    """
    Converts an image to text.

    Args:
        request: Image request (see module docstring). An ``aggregation``
            key overrides the aggregation argument.
        model: Vision encoder-decoder exposing ``generate``
        tokenizer: Tokenizer exposing ``batch_decode``
        processor: Image processor returning ``pixel_values``
        aggregation: Batch aggregation policy

    Returns:
        InferenceResult; tokenizing time covers image loading, processing
        and decoding, inference time covers generation
    """
    aggregation = BatchAggregation(request.get("aggregation", aggregation))
    metrics = InferenceMetrics(tokenizing_time=0.0, inference_time=0.0)
    stopwatch = Stopwatch()

    image = await asyncio.to_thread(load_image, request)
    logger.debug(f"{PREFIX} Image loaded in {stopwatch.elapsed:.1f}ms")

    inputs = await asyncio.to_thread(processor, image, return_tensors="pt")
    pixel_values = inputs["pixel_values"]
    metrics.add_tokenizing(stopwatch.lap())

    batches: List[List[str]] = []
    for batch in pixel_values:
        # Each item is one image; restore the batch dimension
        batch = batch.unsqueeze(0)
        stopwatch.restart()
        output = await asyncio.to_thread(_generate, model, batch)
        metrics.add_inference(stopwatch.lap())
        decoded = tokenizer.batch_decode(output, skip_special_tokens=True)
        metrics.add_tokenizing(stopwatch.lap())
        batches.append([text.strip() for text in decoded])
    logger.debug(f"{PREFIX} Inference done, {len(batches)} batch(es)")

    if aggregation is BatchAggregation.ALL:
        output = [text for texts in batches for text in texts]
    else:
        output = batches[0][0] if batches and batches[0] else None
    return InferenceResult(output=output, metrics=metrics)
