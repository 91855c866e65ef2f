# 健康检查

from fastapi import APIRouter

router = APIRouter(tags=["health"])


@router.get("/health")
def health():
    # 只报进程存活，不连 DB
    return {"status": "ok"}
