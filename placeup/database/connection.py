from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from placeup.config import Settings


def create_db_engine(settings: Settings) -> Engine:
    """설정으로부터 엔진 생성 - 전역 엔진 없이 컨테이너가 소유"""
    url = settings.database_url

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=settings.DEBUG,
            connect_args={"check_same_thread": False},
        )
        _enable_sqlite_immediate_transactions(engine)
        return engine

    return create_engine(
        url,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_pre_ping=True,  # 연결 유효성 검사
        pool_recycle=3600,  # 1시간마다 연결 재생성
        echo=settings.DEBUG,  # 디버그 모드에서 SQL 로깅
        connect_args={"options": f"-c timezone={settings.TIMEZONE}"},
    )


def _enable_sqlite_immediate_transactions(engine: Engine) -> None:
    """
    SQLite는 SELECT ... FOR UPDATE를 지원하지 않으므로 모든 트랜잭션을
    BEGIN IMMEDIATE로 시작해 쓰기 트랜잭션을 직렬화한다.
    (pysqlite의 자체 BEGIN 처리는 끄고 SAVEPOINT도 사용 가능하게 함)
    """

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_session_factory(engine: Engine) -> sessionmaker:
    # Use expire_on_commit=False to avoid DetachedInstanceError when accessing
    # attributes after commit within the same request scope (common FastAPI pattern).
    return sessionmaker(
        autocommit=False,
        autoflush=False,
        bind=engine,
        expire_on_commit=False,
    )
