import time
from typing import Any, Dict, List, Optional

import requests

from brainstormer.log_utils import get_logger

logger = get_logger("llm")

TIMEOUT_S = 60
MAX_RETRIES = 3
BACKOFF_BASE_S = 0.75

# 4xx other than rate limiting will not succeed on retry
_RETRY_STATUSES = {408, 409, 429}


def build_headers(api_key: str) -> Dict[str, str]:
    return {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "Authorization": f"Bearer {api_key}",
    }


def post_chat_completion(
    url: str,
    api_key: str,
    model: str,
    messages: List[Dict[str, str]],
    temperature: float = 0.7,
    timeout: int = TIMEOUT_S,
    max_retries: int = MAX_RETRIES,
    backoff_base_s: float = BACKOFF_BASE_S,
    show_bar: bool = False,
    label: str = "API",
) -> Dict[str, Any]:
    """
    POST a chat-completions request with retries.

    Returns {"output_text": str} on success or {"error": {...}} once retries
    are exhausted.
    """
    payload = {"model": model, "messages": messages, "temperature": temperature}
    headers = build_headers(api_key)
    attempts = max(1, int(max_retries))
    last_err: Optional[Dict[str, Any]] = None
    bar_ctx = None
    if show_bar:
        from tqdm import tqdm
        bar_ctx = tqdm(total=attempts, desc=label, unit="try", leave=False)

    try:
        for attempt in range(1, attempts + 1):
            retryable = True
            try:
                r = requests.post(url, headers=headers, json=payload, timeout=timeout)
                status = r.status_code
                text = r.text or ""
                if status == 200:
                    try:
                        data = r.json()
                    except ValueError as e:
                        last_err = {"message": "Invalid JSON from API", "detail": str(e), "body": text[:2000]}
                        break
                    return {"output_text": _extract_output_text(data)}
                try:
                    j = r.json()
                except ValueError:
                    j = {}
                api_err = j.get("error") if isinstance(j, dict) else None
                if isinstance(api_err, dict):
                    last_err = {"message": api_err.get("message") or f"HTTP {status}",
                                "type": api_err.get("type"), "code": api_err.get("code"),
                                "http_status": status}
                else:
                    last_err = {"message": f"HTTP {status}", "http_status": status, "body": text[:2000]}
                retryable = status >= 500 or status in _RETRY_STATUSES
            except requests.RequestException as e:
                last_err = {"message": "Network error", "detail": str(e)}

            logger.warning("chat_completion_failed attempt=%d/%d error=%s", attempt, attempts, last_err.get("message"))
            if bar_ctx:
                bar_ctx.update(1)
            if not retryable:
                break
            if attempt < attempts:
                time.sleep(backoff_base_s * (2 ** (attempt - 1)))
    finally:
        if bar_ctx:
            bar_ctx.close()

    return {"error": last_err or {"message": "Unknown error"}}


def _extract_output_text(data: Any) -> str:
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    if not choices or not isinstance(choices[0], dict):
        return ""
    content = (choices[0].get("message") or {}).get("content")
    return content.strip() if isinstance(content, str) else ""
