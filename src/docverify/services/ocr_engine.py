import logging
from dataclasses import dataclass
from io import BytesIO
from typing import Any, Callable, Dict, List, Optional

import pytesseract
from PIL import Image

from docverify.config.config import Config
from docverify.utils.exceptions import OcrEngineError

logger = logging.getLogger(__name__)


@dataclass
class OcrResult:
    text: str
    confidence: float  # mean word confidence, 0-100


def data_to_result(data: Dict[str, List[Any]]) -> OcrResult:
    """
    Rebuild line-broken text and a mean confidence from ``image_to_data`` output.

    Words are grouped by (block, paragraph, line) so the extractors can scan
    the text line by line. Tesseract reports -1 for non-word boxes; those are
    left out of the mean.
    """
    lines: List[str] = []
    current_key = None
    current_words: List[str] = []
    confidences: List[float] = []

    for i, word in enumerate(data.get("text", [])):
        word = (word or "").strip()
        try:
            conf = float(data["conf"][i])
        except (KeyError, TypeError, ValueError):
            conf = -1.0
        if not word:
            continue
        key = (data["block_num"][i], data["par_num"][i], data["line_num"][i])
        if key != current_key and current_words:
            lines.append(" ".join(current_words))
            current_words = []
        current_key = key
        current_words.append(word)
        if conf >= 0:
            confidences.append(conf)

    if current_words:
        lines.append(" ".join(current_words))

    confidence = sum(confidences) / len(confidences) if confidences else 0.0
    return OcrResult(text="\n".join(lines), confidence=round(confidence, 2))


class TesseractEngine:
    """
    One OCR engine per verification call.

    Use it as a context manager so it is terminated on every exit path:

        with TesseractEngine() as engine:
            result = engine.recognize(image_bytes)
    """

    def __init__(self, lang: Optional[str] = None, timeout: Optional[int] = None,
                 tesseract_cmd: Optional[str] = None, config: str = ""):
        self.lang = lang or Config.OCR_LANG
        self.timeout = Config.OCR_TIMEOUT_SECONDS if timeout is None else timeout
        self.config = config
        self._terminated = False
        cmd = tesseract_cmd or Config.TESSERACT_CMD
        if cmd:
            pytesseract.pytesseract.tesseract_cmd = cmd
        try:
            self.version = pytesseract.get_tesseract_version()
        except Exception as e:
            raise OcrEngineError(f"Tesseract is not available: {e}") from e
        logger.debug("Tesseract %s engine created (lang=%s)", self.version, self.lang)

    def __enter__(self) -> "TesseractEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.terminate()

    @property
    def terminated(self) -> bool:
        return self._terminated

    def recognize(self, image_bytes: bytes) -> OcrResult:
        if self._terminated:
            raise OcrEngineError("OCR engine has already been terminated")
        try:
            image = Image.open(BytesIO(image_bytes))
            data = pytesseract.image_to_data(
                image,
                lang=self.lang,
                config=self.config,
                output_type=pytesseract.Output.DICT,
                timeout=self.timeout,
            )
        except Exception as e:
            raise OcrEngineError(f"OCR recognition failed: {e}") from e
        return data_to_result(data)

    def terminate(self) -> None:
        if not self._terminated:
            self._terminated = True
            logger.debug("Tesseract engine terminated")


EngineFactory = Callable[[], Any]


def default_engine_factory() -> TesseractEngine:
    return TesseractEngine()
