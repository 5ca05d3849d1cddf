from api.payment_api import app  # noqa: F401 - re-export for uvicorn

if __name__ == "__main__":
    import uvicorn
    from payform.config import load_settings

    settings = load_settings()
    uvicorn.run("api.payment_api:app", host=settings.host, port=settings.port, reload=True)
