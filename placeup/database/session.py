from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session, sessionmaker


def open_session(session_factory: sessionmaker) -> Session:
    """컨테이너가 스레드별로 보관하는 세션 생성"""
    return session_factory()


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """
    하나의 공개 연산을 감싸는 원자적 작업 단위

    블록이 정상 종료되면 커밋, 어떤 예외든 발생하면 롤백 후 다시 던진다.
    원장 변경과 리뷰 상태 변경이 부분적으로만 반영되는 일을 막는다.
    세션은 요청 간에 재사용되므로 시작 시 식별 맵을 만료시켜 DB 값을 다시 읽게 한다.
    """
    db.expire_all()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
