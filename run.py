# run.py
import os
from whoson import create_app

if __name__ == "__main__":
    app = create_app()
    port = int(os.environ.get("PORT", "3000"))
    # Dashboard backend; the built-in server is enough for a single ops screen.
    app.run(host="0.0.0.0", port=port)
