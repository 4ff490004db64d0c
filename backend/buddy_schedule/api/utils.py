from fastapi import APIRouter

router = APIRouter(prefix="/api", tags=["utils"])


@router.get("/health")
def health_check():
    """Public health check endpoint"""
    return {"status": "ok", "service": "Buddy Schedule"}
