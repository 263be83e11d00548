from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

from config import DATABASE_URL

# check_same_thread=False нужен только для SQLite
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, connect_args=connect_args)


def enable_sqlite_foreign_keys(sqlite_engine):
    """Включает проверку внешних ключей (и ON DELETE) на каждом соединении SQLite."""

    @event.listens_for(sqlite_engine, "connect")
    def _set_foreign_keys_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


# SQLite по умолчанию игнорирует FOREIGN KEY
if DATABASE_URL.startswith("sqlite"):
    enable_sqlite_foreign_keys(engine)

# Фабрика сессий
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine
)

# Базовый класс для моделей
Base = declarative_base()


def utcnow() -> datetime:
    """Текущее время в UTC без tzinfo (так время хранится в БД)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Функция для получения сессии БД
def get_db():
    """
    Возвращает сессию базы данных.
    Используется в FastAPI как зависимость.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
