"""Barcode decoding from product photos using OpenCV."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from .models import ImageBlob

logger = logging.getLogger(__name__)


class Decoder(ABC):
    @abstractmethod
    def decode(self, image: ImageBlob) -> str | None:
        """Return the barcode found in the image, or None."""
        ...

    def decode_file(self, path: str | Path) -> str | None:
        return self.decode(ImageBlob.from_path(path))


class OpenCVBarcodeDecoder(Decoder):
    """EAN/UPC decoding with cv2.barcode.BarcodeDetector."""

    def __init__(self) -> None:
        self._detector = None

    def _get_detector(self):
        if self._detector is not None:
            return self._detector
        try:
            import cv2
        except ImportError:
            raise ImportError(
                "opencv-python is required: pip install 'glutenpeek[decoder]'"
            ) from None
        self._detector = cv2.barcode.BarcodeDetector()
        return self._detector

    def decode(self, image: ImageBlob) -> str | None:
        try:
            import cv2
            import numpy as np
        except ImportError:
            raise ImportError(
                "opencv-python is required: pip install 'glutenpeek[decoder]'"
            ) from None

        detector = self._get_detector()
        frame = cv2.imdecode(np.frombuffer(image.data, dtype=np.uint8), cv2.IMREAD_COLOR)
        if frame is None:
            logger.warning("Could not decode image %s", image.filename)
            return None

        result = detector.detectAndDecode(frame)
        # OpenCV < 4.8: (ok, infos, types, points); 4.8+: (info, points, straight)
        if len(result) == 4 and isinstance(result[0], bool):
            ok, infos = result[0], result[1]
            candidates = list(infos) if ok and infos is not None else []
        else:
            candidates = [result[0]]

        for value in candidates:
            if value:
                logger.debug("Decoded barcode %s from %s", value, image.filename)
                return str(value)
        return None
