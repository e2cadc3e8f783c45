import logging

from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from sqlalchemy.orm import DeclarativeBase
from werkzeug.middleware.proxy_fix import ProxyFix
from flask_login import LoginManager

from config import get_config_class, resolve_database_url, engine_options_for

config_class = get_config_class()

# 로깅 설정
logging.basicConfig(
    level=config_class.LOG_LEVEL,
    format='%(asctime)s %(levelname)s [%(name)s] %(message)s'
)
logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    pass


db = SQLAlchemy(model_class=Base)
# Flask 앱 생성
app = Flask(__name__)
app.config.from_object(config_class)
app.wsgi_app = ProxyFix(app.wsgi_app, x_proto=1, x_host=1)  # url_for가 https를 생성하도록 필요


def check_postgres_connection(database_url):
    """PostgreSQL 연결 확인 (실패 시 SQLite 폴백)"""
    import psycopg2

    try:
        conn = psycopg2.connect(database_url.replace("postgresql+psycopg2://", "postgresql://", 1))
        conn.close()
        logger.info("PostgreSQL 데이터베이스 연결 성공")
        return database_url
    except psycopg2.Error as e:
        logger.error("PostgreSQL 연결 실패: %s", e)
        logger.warning("영구 SQLite 데이터베이스로 폴백합니다")
        return resolve_database_url("")


# 데이터베이스 설정
database_url = resolve_database_url()
if database_url.startswith("postgresql") and not app.config.get("TESTING"):
    database_url = check_postgres_connection(database_url)

app.config["SQLALCHEMY_DATABASE_URI"] = database_url
app.config["SQLALCHEMY_ENGINE_OPTIONS"] = engine_options_for(database_url, config_class)
logger.info("데이터베이스: %s", database_url.split("@")[-1])

# 데이터베이스 초기화
db.init_app(app)

# 로그인 매니저 설정
login_manager = LoginManager()
login_manager.init_app(app)
login_manager.login_message = '이 페이지에 접근하려면 로그인이 필요합니다.'


@login_manager.unauthorized_handler
def unauthorized():
    from flask import jsonify
    return jsonify({'success': False, 'error': login_manager.login_message}), 401


def seed_initial_data():
    """관리자 계정 및 공휴일 초기 데이터"""
    from models import User, Role, Holiday
    from holidays import add_korean_holidays

    # 관리자 계정 생성 (없을 경우에만)
    if not User.query.filter_by(username=app.config["ADMIN_USERNAME"]).first():
        admin = User(
            username=app.config["ADMIN_USERNAME"],
            email=app.config["ADMIN_EMAIL"],
            name='관리자',
            role=Role.ADMIN
        )
        admin.set_password(app.config["ADMIN_PASSWORD"])
        db.session.add(admin)
        db.session.commit()
        logger.info("관리자 계정 생성 완료 (%s)", admin.username)

    # 공휴일 등록 (2025, 2026년)
    if not Holiday.query.first():
        add_korean_holidays(2025)
        add_korean_holidays(2026)


with app.app_context():
    # 모델 임포트
    import models  # noqa: F401

    # 데이터베이스 테이블 생성
    db.create_all()

    if app.config.get("SEED_ON_STARTUP"):
        try:
            seed_initial_data()
        except Exception:
            db.session.rollback()
            logger.exception("초기 데이터 설정 중 오류")

    # 라우트 등록
    from auth import auth_bp
    from admin import admin_bp
    from employee import employee_bp
    from documents import documents_bp
    from subsidies import subsidies_bp
    from expenses import expenses_bp
    from routes import main_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp, url_prefix='/admin')
    app.register_blueprint(employee_bp, url_prefix='/employee')
    app.register_blueprint(documents_bp, url_prefix='/documents')
    app.register_blueprint(subsidies_bp, url_prefix='/subsidies')
    app.register_blueprint(expenses_bp, url_prefix='/expenses')
    app.register_blueprint(main_bp)

    # User 로더 설정
    from models import User

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))
