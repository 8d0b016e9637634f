from sqlalchemy import create_engine, event         # SQLAlchemy engine factory
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from config.settings import settings               # environment backed settings

# SQLite (tests) needs a single shared connection; everything else uses the default pool
if settings.DATABASE_URL.startswith("sqlite"):
    engine = create_engine(
        settings.DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # pysqlite transaction handling: let SQLAlchemy emit BEGIN so SAVEPOINTs work
    @event.listens_for(engine, "connect")
    def _sqlite_on_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _sqlite_on_begin(conn):
        conn.exec_driver_sql("BEGIN")
else:
    engine = create_engine(settings.DATABASE_URL, pool_pre_ping=True)

# Session factory used by routers and scripts
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Declarative base for every model
Base = declarative_base()
