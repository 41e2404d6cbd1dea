# app/main.py

from app import create_app
from app.configs.settings import settings
import uvicorn

app = create_app()

@app.get("/")
def root():
    return {"service": settings.PROJECT_NAME, "status": "ok"}

if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
