"""WSGI configuration for production deployment.

Run with a single worker process (threads are fine): active QR broadcasts
are held in memory.
"""
import os

from dotenv import load_dotenv

load_dotenv()

from qr_attendance import create_app  # noqa: E402

# Create Flask application instance
app = create_app(os.getenv('FLASK_ENV', 'production'))

if __name__ == "__main__":
    app.run()
