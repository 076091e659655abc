# run.py
import uvicorn
from marcha.core.config import get_settings

if __name__ == "__main__":
    settings = get_settings()
    uvicorn.run(
        "marcha.main:create_app",  # app factory
        factory=True,
        host="0.0.0.0",
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level="debug" if settings.DEBUG else "info",
        access_log=True
    )
