import os


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "my_secretkey")
    HOST = os.environ.get("HOST", "0.0.0.0")
    PORT = int(os.environ.get("PORT", 3000))
    SOCKETIO_ASYNC_MODE = os.environ.get("SOCKETIO_ASYNC_MODE", "eventlet")
    CORS_ALLOWED_ORIGINS = os.environ.get("CORS_ALLOWED_ORIGINS", "*")
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")
    TESTING = False


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing"
    SOCKETIO_ASYNC_MODE = "threading"
    LOG_LEVEL = "DEBUG"
    LOG_FORMAT = "text"
