from app import app, db
from models import User, Role


def create_admin_account():
    """관리자 계정 생성 (설정의 ADMIN_USERNAME / ADMIN_PASSWORD 사용)"""
    with app.app_context():
        username = app.config['ADMIN_USERNAME']

        # 이미 admin 계정이 있는지 확인
        existing_admin = User.query.filter_by(username=username).first()
        if existing_admin:
            print(f"'{username}' 계정이 이미 존재합니다.")
            return

        admin = User(
            username=username,
            email=app.config['ADMIN_EMAIL'],
            name='관리자',
            role=Role.ADMIN,
        )
        admin.set_password(app.config['ADMIN_PASSWORD'])

        db.session.add(admin)
        db.session.commit()

        print("관리자 계정 생성 완료:")
        print(f"- 사용자명: {username}")
        print(f"- 역할: {Role.ADMIN}")
        print("\n로그인 후 비밀번호를 변경하세요.")


if __name__ == "__main__":
    create_admin_account()
