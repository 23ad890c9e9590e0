import os
from dotenv import load_dotenv
load_dotenv()  # loads .env

BASE_DIR = os.path.dirname(os.path.dirname(__file__))

DATABASE_URL = os.environ.get("DATABASE_URL", f"sqlite:///{os.path.join(BASE_DIR, 'db.sqlite')}")
SECRET_KEY = os.environ.get("SECRET_KEY", "change-me")
LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()
DEFAULT_CURRENCY = os.environ.get("DEFAULT_CURRENCY", "USD")
