import os
import logging

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


def _bool_env(name, default=False):
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def resolve_database_url(database_url=None):
    """데이터베이스 URL 결정 (PostgreSQL 우선, 없으면 영구 SQLite)"""
    if database_url is None:
        database_url = os.environ.get("DATABASE_URL")

    if database_url:
        # PostgreSQL URL 변환
        if database_url.startswith("postgres://"):
            database_url = database_url.replace("postgres://", "postgresql://", 1)
        return database_url

    # 개발환경: 영구 SQLite 사용
    db_dir = os.path.abspath("instance")
    os.makedirs(db_dir, exist_ok=True)
    return f"sqlite:///{db_dir}/hr_payroll.db"


class Config:
    SECRET_KEY = os.environ.get("SESSION_SECRET", "dev-secret-key")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    LOG_LEVEL = logging.INFO

    # 연결 풀 설정 (SQLite 제외)
    POOL_OPTIONS = {
        "pool_recycle": 300,
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }

    PERMANENT_SESSION_LIFETIME = 1800  # 세션 30분
    SEED_ON_STARTUP = _bool_env("SEED_ON_STARTUP", True)
    WTF_CSRF_ENABLED = True

    # 메일 설정
    MAIL_ENABLED = _bool_env("MAIL_ENABLED", False)
    MAIL_SERVER = os.environ.get("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME", "")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD", "")
    MAIL_SENDER = os.environ.get("MAIL_SENDER", "인사관리 <noreply@example.com>")

    APP_BASE_URL = os.environ.get("APP_BASE_URL", "http://localhost:5000")
    COMPANY_NAME = os.environ.get("COMPANY_NAME", "주식회사 샘플")

    ADMIN_USERNAME = os.environ.get("ADMIN_USERNAME", "admin")
    ADMIN_PASSWORD = os.environ.get("ADMIN_PASSWORD", "admin1234")
    ADMIN_EMAIL = os.environ.get("ADMIN_EMAIL", "admin@company.com")


class DevelopmentConfig(Config):
    DEBUG = True
    LOG_LEVEL = logging.DEBUG


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "test-secret"
    SEED_ON_STARTUP = False
    WTF_CSRF_ENABLED = False
    MAIL_ENABLED = False


class ProductionConfig(Config):
    DEBUG = False
    SESSION_COOKIE_SECURE = True


def get_config_class(env=None):
    """APP_ENV 값에 따라 설정 클래스 선택"""
    env = (env or os.environ.get("APP_ENV", "development")).lower()

    if env in {"prod", "production"}:
        return ProductionConfig
    if env in {"test", "testing"}:
        return TestingConfig
    return DevelopmentConfig


def engine_options_for(database_url, config_class):
    # 인메모리 SQLite는 StaticPool을 쓰므로 풀 크기 옵션을 넘기면 안 됨
    if database_url.startswith("sqlite"):
        return {}
    return dict(config_class.POOL_OPTIONS)
