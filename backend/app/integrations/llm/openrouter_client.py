"""
LLM 出口：OpenRouter chat-completions
  - 只负责发请求 / 状态码 / 响应结构校验，不关心 prompt 内容；
  - 缺 key -> ConfigError，非 200 / error 字段 / 空 choices -> UpstreamError，由调用方决定是否降级。
"""

from __future__ import annotations
import logging, time, requests
from typing import Any, Dict, Optional

from app.core.config import settings, secret_value
from app.core.errors import ConfigError, UpstreamError

logger = logging.getLogger(__name__)


DEFAULT_MODEL = "meta-llama/llama-3.3-70b-instruct:free"


class OpenRouterClient:
    """单一 chat-completion 出口。"""

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[int] = None,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.api_key = api_key or secret_value(settings.OPENROUTER_API_KEY)
        self.model = model or settings.OPENROUTER_MODEL or DEFAULT_MODEL
        self.base_url = base_url or settings.OPENROUTER_BASE_URL
        self.timeout = timeout or settings.LLM_HTTP_TIMEOUT
        self._session = session or requests.Session()


    # ---------- Public ----------
    def complete(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        *,
        model: Optional[str] = None,
    ) -> str:
        """发一条 user 消息，返回 choices[0].message.content（已 strip）。"""
        if not self.api_key:
            raise ConfigError("OPENROUTER_API_KEY is not configured")

        use_model = model or self.model
        body = {
            "model": use_model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        start = time.perf_counter()
        try:
            resp = self._session.post(self.base_url, json=body, headers=headers, timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning("llm.request_exception model=%s err=%s", use_model, type(e).__name__)
            raise UpstreamError(f"LLM request error: {type(e).__name__}") from e
        latency_ms = int((time.perf_counter() - start) * 1000)

        if resp.status_code != 200:
            text = (resp.text or "")[:500]
            logger.warning("llm.http_error model=%s status=%s latency_ms=%s", use_model, resp.status_code, latency_ms)
            raise UpstreamError(f"LLM returned status {resp.status_code}: {text}", status=resp.status_code, body=text)

        data = self._as_json(resp)
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                message = error.get("message")
            elif isinstance(error, str):
                message = error
            else:
                raise UpstreamError("LLM response has unexpected shape", status=resp.status_code)
            raise UpstreamError(f"LLM error: {message}", status=resp.status_code)

        choices = data.get("choices") or []
        if not isinstance(choices, list):
            raise UpstreamError("LLM response has unexpected shape", status=resp.status_code)
        if not choices:
            raise UpstreamError("LLM returned no choices", status=resp.status_code)

        content = self._first_content(choices[0])
        if content is None:
            raise UpstreamError("LLM response has unexpected shape", status=resp.status_code)
        logger.info("llm.ok model=%s latency_ms=%s chars=%s", use_model, latency_ms, len(content))
        return content.strip()


    # ---------- Internals ----------
    @staticmethod
    def _first_content(choice: Any) -> Optional[str]:
        """choices[0].message.content；结构不对返回 None，content 为 null 视为空串"""
        if not isinstance(choice, dict):
            return None
        message = choice.get("message")
        if not isinstance(message, dict):
            return None
        content = message.get("content")
        if content is None:
            return ""
        return content if isinstance(content, str) else None

    def _as_json(self, resp: requests.Response) -> Dict[str, Any]:
        """解析响应 JSON；失败则截取文本抛 UpstreamError。"""
        try:
            data = resp.json()
        except ValueError as e:
            text = (resp.text or "")[:500]
            raise UpstreamError(f"LLM non-JSON response (status={resp.status_code}): {text}", body=text) from e
        if not isinstance(data, dict):
            raise UpstreamError("LLM response is not a JSON object")
        return data


_default_client: Optional[OpenRouterClient] = None


def get_llm_client() -> OpenRouterClient:
    """进程内复用一个 client（FastAPI 依赖 / 服务层默认值）。"""
    global _default_client
    if _default_client is None:
        _default_client = OpenRouterClient()
    return _default_client
