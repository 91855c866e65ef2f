#!/usr/bin/env python3
from __future__ import annotations
import sys, json, argparse

from app.core.config import settings
from app.core.logging import configure_logging
from app.db.session import SessionLocal
from app.integrations.shopify import ShopifyClient
from app.repository.connector_repo import get_connector


'''
运维小脚本：给某个店铺（重新）注册 5 个 webhook topic
    - 已装好的连接器：--connector-id <id>（从库里取 shop + token）
    - 或者直接给：--shop demo.myshopify.com --token shpat_xxx
    - 回调地址默认用 APP_BASE_URL，换环境（ngrok 等）时用 --base-url 覆盖
    - 用法（backend/ 目录下）：
    PYTHONPATH=. python ../scripts/register_webhooks.py --connector-id shopify_demo_myshopify_com
'''
def main() -> int:
    ap = argparse.ArgumentParser(description="Register Shopify webhook topics for a shop.")
    ap.add_argument("--connector-id", help="Connector id stored in the database")
    ap.add_argument("--shop", help="Shop domain, e.g. demo.myshopify.com")
    ap.add_argument("--token", help="Admin API access token (with --shop)")
    ap.add_argument("--base-url", default=None, help="Public base URL for callbacks (default: APP_BASE_URL)")
    args = ap.parse_args()

    configure_logging()
    base_url = args.base_url or settings.APP_BASE_URL

    if args.connector_id:
        db = SessionLocal()
        try:
            connector = get_connector(db, args.connector_id)
        finally:
            db.close()
        if connector is None:
            print(f"ERROR: connector not found: {args.connector_id}", file=sys.stderr)
            return 2
        shop, token = connector.shop_domain, connector.access_token
    elif args.shop and args.token:
        shop, token = args.shop, args.token
    else:
        print("ERROR: provide --connector-id, or --shop together with --token", file=sys.stderr)
        return 2

    report = ShopifyClient(shop, token).register_webhooks(base_url)
    print(json.dumps(report, ensure_ascii=False, indent=2))
    return 0 if all(entry["ok"] for entry in report) else 1


if __name__ == "__main__":
    sys.exit(main())
