"""面向 Admin REST 的轻量 Client：OAuth 换 token / 拉商品 / 拉库存 / 注册 webhook"""
from __future__ import annotations

import secrets, time, logging, requests
from typing import Any, Dict, Iterable, List, Optional
from urllib.parse import urlencode
from requests import Timeout, RequestException

from app.core.config import settings, secret_value
from app.core.errors import AuthFailedError, ConfigError, UpstreamError
from app.integrations.shopify.payload_utils import shop_host


logger = logging.getLogger(__name__)


WEBHOOK_TOPICS = (
    "products/create",
    "products/update",
    "products/delete",
    "inventory_levels/update",
    "app/uninstalled",
)

_IDS_PER_REQUEST = 50    # variants.json?ids= / inventory_levels.json?inventory_item_ids= 每批最多 50


def generate_state() -> str:
    """OAuth state 随机串"""
    return secrets.token_hex(16)


def webhook_address(base_url: str, topic: str) -> str:
    # products/create -> {base}/api/v1/webhooks/shopify/products/create
    return f"{base_url.rstrip('/')}{settings.API_PREFIX}/webhooks/shopify/{topic}"


def _chunks(items: List[str], size: int) -> Iterable[List[str]]:
    for idx in range(0, len(items), size):
        yield items[idx: idx + size]


class ShopifyClient:

    def __init__(
        self,
        shop: str,
        access_token: Optional[str] = None,
        *,
        session: Optional[requests.Session] = None,
        timeout: Optional[int] = None,
        api_version: Optional[str] = None,
    ) -> None:
        self.host = shop_host(shop)
        self.access_token = access_token
        self.timeout = timeout or settings.SHOPIFY_HTTP_TIMEOUT
        self.api_version = api_version or settings.SHOPIFY_API_VERSION
        self._session = session or requests.Session()


    # ---------------- 基础：端点 & 认证 ----------------
    def _url(self, path: str) -> str:
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"https://{self.host}/admin/api/{self.api_version}/{path.lstrip('/')}"

    def _auth_headers(self) -> dict:
        if not self.access_token:
            raise ConfigError(f"missing access token for shop {self.host}")
        return {
            "Content-Type": "application/json",
            "Accept": "application/json",
            "X-Shopify-Access-Token": self.access_token,
            "User-Agent": "ListingHub/ShopifyClient (+python)",
        }


    # ---------------- OAuth ----------------
    def build_authorize_url(self, redirect_uri: str, state: str, scopes: Optional[str] = None) -> str:
        client_id = settings.SHOPIFY_CLIENT_ID
        if not client_id:
            raise ConfigError("SHOPIFY_CLIENT_ID is not configured")
        query = urlencode({
            "client_id": client_id,
            "scope": scopes or settings.SHOPIFY_SCOPES,
            "redirect_uri": redirect_uri,
            "state": state,
        })
        return f"https://{self.host}/admin/oauth/authorize?{query}"


    def authorize(self, code: str) -> Dict[str, Any]:
        """
        code 换 access_token（form-urlencoded POST）。
        非 2xx 或返回里 access_token 为空 -> AuthFailedError；成功后把 token 记在 client 上。
        """
        client_id = settings.SHOPIFY_CLIENT_ID
        client_secret = secret_value(settings.SHOPIFY_CLIENT_SECRET)
        if not client_id or not client_secret:
            raise ConfigError("SHOPIFY_CLIENT_ID / SHOPIFY_CLIENT_SECRET are not configured")

        url = f"https://{self.host}/admin/oauth/access_token"
        try:
            resp = self._session.post(
                url,
                data={"client_id": client_id, "client_secret": client_secret, "code": code},
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except RequestException as e:
            raise UpstreamError(f"oauth request error: {type(e).__name__}") from e

        if not 200 <= resp.status_code < 300:
            logger.warning("shopify.oauth.http_error shop=%s status=%s", self.host, resp.status_code)
            raise AuthFailedError(f"token exchange failed: status={resp.status_code}")

        try:
            data = resp.json()
        except ValueError as e:
            raise AuthFailedError("token exchange returned non-JSON body") from e

        token = (data or {}).get("access_token") or ""
        if not token:
            raise AuthFailedError("token exchange returned empty access_token")

        self.access_token = token
        logger.info("shopify.oauth.ok shop=%s scope=%s", self.host, data.get("scope"))
        return {"access_token": token, "scope": data.get("scope") or ""}


    '''
    通用 GET（带日志 + 重试）
       1) 429 按 Retry-After 退避重试
       2) 5xx / 网络异常 指数退避重试
       3) 其它 4xx 不重试，直接 UpstreamError
    '''
    def _get(self, path: str, params: Optional[dict] = None, *, op_name: str = "") -> requests.Response:
        max_retries = max(0, int(settings.SHOPIFY_HTTP_RETRIES))
        backoff_ms = max(50, int(settings.SHOPIFY_HTTP_BACKOFF_MS))
        url = self._url(path)

        for attempt in range(max_retries + 1):
            start = time.perf_counter()
            try:
                resp = self._session.get(url, headers=self._auth_headers(), params=params, timeout=self.timeout)
            except (Timeout, RequestException) as e:
                latency_ms = int((time.perf_counter() - start) * 1000)
                logger.warning("shopify.rest.request_exception op=%s latency_ms=%s attempt=%s/%s err=%s",
                    op_name, latency_ms, attempt, max_retries, type(e).__name__)
                if attempt == max_retries:
                    raise UpstreamError(f"{op_name} request error: {type(e).__name__}") from e
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                continue

            latency_ms = int((time.perf_counter() - start) * 1000)
            status = resp.status_code

            if status == 429 and attempt < max_retries:
                retry_after = resp.headers.get("Retry-After")
                try:
                    sleep_s = max(0.1, float(retry_after))
                except (TypeError, ValueError):
                    sleep_s = (backoff_ms / 1000.0) * (2 ** attempt)
                logger.warning("shopify.rest.429_throttled op=%s latency_ms=%s attempt=%s/%s retry_after=%s",
                    op_name, latency_ms, attempt, max_retries, retry_after)
                time.sleep(sleep_s)
                continue

            if 500 <= status < 600 and attempt < max_retries:
                logger.warning("shopify.rest.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                    op_name, status, latency_ms, attempt, max_retries)
                time.sleep((backoff_ms / 1000.0) * (2 ** attempt))
                continue

            if not 200 <= status < 300:
                logger.warning("shopify.rest.http_error op=%s status=%s latency_ms=%s attempt=%s/%s",
                    op_name, status, latency_ms, attempt, max_retries)
                raise UpstreamError(f"{op_name} failed: status={status}", status=status, body=resp.text)

            logger.info("shopify.rest.ok op=%s latency_ms=%s attempt=%s", op_name, latency_ms, attempt)
            return resp

        raise UpstreamError(f"{op_name} exhausted retries")


    def _get_json(self, path: str, params: Optional[dict] = None, *, op_name: str = "") -> Dict[str, Any]:
        resp = self._get(path, params, op_name=op_name)
        try:
            return resp.json() or {}
        except ValueError as e:
            raise UpstreamError(f"{op_name} returned non-JSON body", status=resp.status_code, body=resp.text) from e


    # ---------------- 店铺 / 商品 ----------------
    def get_shop(self) -> Dict[str, Any]:
        return self._get_json("shop.json", op_name="shop.get").get("shop") or {}


    def list_products(self, *, limit: int = 250, max_pages: Optional[int] = None) -> List[Dict[str, Any]]:
        """
        拉全部商品（默认字段，变体带 inventory_quantity）。
        按 Link: <...page_info=...>; rel="next" 翻页，最多 max_pages 页。
        """
        max_pages = max_pages or settings.SHOPIFY_SYNC_MAX_PAGES
        products: List[Dict[str, Any]] = []
        path: str = "products.json"
        params: Optional[dict] = {"limit": limit}

        for page in range(1, max_pages + 1):
            resp = self._get(path, params, op_name="products.list")
            try:
                body = resp.json() or {}
            except ValueError as e:
                raise UpstreamError("products.list returned non-JSON body", status=resp.status_code, body=resp.text) from e
            batch = body.get("products") or []
            products.extend(batch)

            next_link = (resp.links or {}).get("next") or {}
            next_url = next_link.get("url")
            if not next_url or not batch:
                break
            # next 链接已经带了 limit + page_info
            path, params = next_url, None
        else:
            logger.warning("shopify.products.page_cap shop=%s pages=%s", self.host, max_pages)

        logger.info("shopify.products.listed shop=%s count=%s", self.host, len(products))
        return products


    def fetch_inventory(self, variant_ids: List[Any]) -> Dict[str, int]:
        """
        两步：variant -> inventory_item_id，再读 inventory_levels。
        返回 {variant_id: available}；多个 location 的 available 相加。空输入不请求上游。
        """
        ids = [str(v).strip() for v in variant_ids or [] if str(v).strip()]
        if not ids:
            return {}

        item_to_variant: Dict[str, str] = {}
        for batch in _chunks(ids, _IDS_PER_REQUEST):
            body = self._get_json("variants.json", {"ids": ",".join(batch)}, op_name="variants.list")
            for variant in body.get("variants") or []:
                item_id = variant.get("inventory_item_id")
                if item_id is not None:
                    item_to_variant[str(item_id)] = str(variant.get("id"))

        result: Dict[str, int] = {}
        item_ids = list(item_to_variant.keys())
        for batch in _chunks(item_ids, _IDS_PER_REQUEST):
            body = self._get_json(
                "inventory_levels.json", {"inventory_item_ids": ",".join(batch)}, op_name="inventory_levels.list"
            )
            for level in body.get("inventory_levels") or []:
                variant_id = item_to_variant.get(str(level.get("inventory_item_id")))
                if variant_id is None:
                    continue
                result[variant_id] = result.get(variant_id, 0) + int(level.get("available") or 0)

        return result


    # ---------------- Webhook 注册 ----------------
    def register_webhooks(self, base_url: str, topics: Iterable[str] = WEBHOOK_TOPICS) -> List[Dict[str, Any]]:
        """
        为每个 topic POST 一次 webhooks.json；201/200 成功，422 视为已注册。
        其它状态逐个记录，不中断整批。
        """
        report: List[Dict[str, Any]] = []
        url = self._url("webhooks.json")

        for topic in topics:
            address = webhook_address(base_url, topic)
            entry: Dict[str, Any] = {"topic": topic, "address": address, "status": None, "ok": False, "detail": ""}
            try:
                resp = self._session.post(
                    url,
                    headers=self._auth_headers(),
                    json={"webhook": {"topic": topic, "address": address, "format": "json"}},
                    timeout=self.timeout,
                )
            except RequestException as e:
                entry["detail"] = f"request error: {type(e).__name__}"
                logger.warning("shopify.webhook.register_error shop=%s topic=%s err=%s", self.host, topic, type(e).__name__)
                report.append(entry)
                continue

            entry["status"] = resp.status_code
            if resp.status_code in (200, 201):
                entry.update(ok=True, detail="registered")
            elif resp.status_code == 422:
                # 已存在同 address 的订阅
                entry.update(ok=True, detail="already registered")
            else:
                entry["detail"] = (resp.text or "")[:300]

            log = logger.info if entry["ok"] else logger.warning
            log("shopify.webhook.register shop=%s topic=%s status=%s detail=%s",
                self.host, topic, resp.status_code, entry["detail"])
            report.append(entry)

        return report
