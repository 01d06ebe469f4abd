from fastapi import APIRouter

router = APIRouter(prefix="/api", tags=["root"])

@router.get("/")
async def root():
    return {"message": "PWA2APK Studio API - web app to Android build orchestration"}
