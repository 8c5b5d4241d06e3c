# petcare/services/response_parser.py
import json
import logging
from typing import Any, Dict, Optional

from petcare.errors import UpstreamParseError

logger = logging.getLogger(__name__)


def _load_object(text: str) -> Optional[Dict[str, Any]]:
    try:
        data = json.loads(text)
    except (TypeError, ValueError, RecursionError):
        return None
    return data if isinstance(data, dict) else None


def parse_model_output(raw_text: str) -> Dict[str, Any]:
    """Extract the JSON object from raw model text.

    Tries the whole text first, then the span from the first '{' to the
    last '}' to recover an object wrapped in prose. Truncated or invalid
    JSON is not repaired.
    """
    text = (raw_text or "").strip()

    data = _load_object(text)
    if data is not None:
        return data

    start, end = text.find("{"), text.rfind("}")
    if start != -1 and end > start:
        data = _load_object(text[start:end + 1])
        if data is not None:
            logger.info("🔧 Recovered JSON object embedded in model prose")
            return data

    logger.warning(f"⚠️ Unparsable model output ({len(text)} chars)")
    raise UpstreamParseError("Model output did not contain a JSON object", raw_text=raw_text)
