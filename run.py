import uvicorn

from gallery.config import settings

if __name__ == "__main__":
    uvicorn.run(
        "gallery.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=False,
        workers=1,  # Anchor and sessions live in process memory
        loop="asyncio",
        log_level=settings.LOG_LEVEL.lower()
    )
