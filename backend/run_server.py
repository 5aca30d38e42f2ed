import uvicorn
import os
import sys

if __name__ == "__main__":
    # Add the current directory to sys.path
    sys.path.append(os.path.dirname(os.path.abspath(__file__)))

    from feedback_engine.config import settings

    print("🚀 Starting Feedback Intelligence Backend...")
    print(f"   Host: {settings.app_host}")
    print(f"   Port: {settings.app_port}")
    print(f"   Reload: {settings.debug_mode}")

    uvicorn.run(
        "feedback_engine.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.debug_mode,
        log_level="info"
    )
