"""Create the settings and inference-log tables from ORM models."""

from db.models import Base
from db.session import engine

if __name__ == "__main__":
    Base.metadata.create_all(bind=engine)
    print(f"DB schema created: {', '.join(sorted(Base.metadata.tables))}")
