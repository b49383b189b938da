import os
from dotenv import load_dotenv

load_dotenv()

BASE_DIR = os.path.dirname(os.path.abspath(__file__))

DB_FILE = os.getenv(
    "OCCAPI_DB_FILE",
    os.path.join(BASE_DIR, "..", "data", "occapi.db")
)

REQUEST_TIMEOUT = float(os.getenv("OCCAPI_REQUEST_TIMEOUT", "10"))
LANG_PREF       = os.getenv("OCCAPI_LANG_PREF", "en")

SECRET_KEY = os.getenv("FLASK_SECRET_KEY", "replace_this_in_prod")

LOG_LEVEL  = os.getenv("OCCAPI_LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s %(levelname)s %(message)s"
LOG_DATEFMT = "%H:%M:%S"
