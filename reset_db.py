# reset_db.py
from app.models import database  # Make sure this imports your Base
from app.models import *  # noqa: F401,F403  registers all models
from app.models.database import engine

if __name__ == "__main__":
    print("⚠️ Dropping journal, chat, insight and summary tables...")
    database.Base.metadata.drop_all(bind=engine)

    print("✅ Recreating tables from models...")
    database.Base.metadata.create_all(bind=engine)

    print("✅ Reflect database reset complete.")
