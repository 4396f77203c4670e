from threading import Lock

from sqlalchemy import create_engine, inspect, text
from sqlalchemy.orm import declarative_base, sessionmaker

from membership.core import config


connect_args = {'check_same_thread': False} if config.DATABASE_URL.startswith('sqlite') else {}

engine = create_engine(config.DATABASE_URL, echo=config.SQL_ECHO, connect_args=connect_args)

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

Base = declarative_base()

_schema_lock = Lock()
_user_schema_checked: set = set()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def ensure_user_schema(bind=None) -> None:
    """Bring an existing ``users`` table up to the model's columns and indexes.

    Only nullable columns are added. ``ALTER TABLE`` cannot backfill
    required values, and server defaults such as ``CURRENT_TIMESTAMP`` are
    rejected by SQLite, so added columns start out empty.
    """
    bind = bind if bind is not None else engine

    if bind in _user_schema_checked:
        return

    with _schema_lock:
        if bind in _user_schema_checked:
            return

        table = Base.metadata.tables.get('users')
        inspector = inspect(bind)

        if table is None or 'users' not in inspector.get_table_names():
            _user_schema_checked.add(bind)
            return

        existing_columns = {column['name'] for column in inspector.get_columns('users')}
        preparer = bind.dialect.identifier_preparer

        with bind.begin() as connection:
            for column in table.columns:
                if column.name in existing_columns or column.primary_key or not column.nullable:
                    continue
                column_type = column.type.compile(dialect=bind.dialect)
                connection.execute(
                    text(f'ALTER TABLE users ADD COLUMN {preparer.quote(column.name)} {column_type}')
                )
            for index in table.indexes:
                if all(column.name in existing_columns or column.nullable for column in index.columns):
                    index.create(connection, checkfirst=True)

        _user_schema_checked.add(bind)
