# services/file_service/init_db.py
from services.file_service.db import engine, Base
from services.file_service.models import FileMeta, FileTag  # noqa: F401  registers the tables


def init():
    Base.metadata.create_all(bind=engine)
    print("DB tables created")

if __name__ == "__main__":
    init()
