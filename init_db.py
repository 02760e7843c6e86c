# init_db.py
from whoson import create_app
from whoson.models import init_db

if __name__ == "__main__":
    app = create_app()
    # LocalStore already creates its tables; this keeps the script explicit and idempotent.
    init_db(app.extensions["whoson.store"].engine)
    print("✅ Cache database initialized (SQLAlchemy)")
