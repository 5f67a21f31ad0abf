"""Local development entry point.

Usage:
    python run.py

Loads .env first so config.py sees DATABASE_URL, CRM_SERVICE_KEY, etc.
"""

from dotenv import load_dotenv

load_dotenv()  # Load .env before anything else

from salesdesk import create_app

app = create_app()

if __name__ == "__main__":
    app.run(debug=True, host="0.0.0.0", port=5001)
