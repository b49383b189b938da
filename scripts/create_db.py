import os, sys, getpass, logging

# Add project root to Python path
project_root = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
sys.path.append(project_root)

from occapi import settings
from occapi.api_ui import ALL_PERMISSIONS, hash_password
from occapi.db import insert_many
from occapi.schema import ensure_schema

logging.basicConfig(level=settings.LOG_LEVEL, format=settings.LOG_FORMAT, datefmt=settings.LOG_DATEFMT)

def reset_db():
    # Remove existing database file to ensure fresh schema
    if os.path.exists(settings.DB_FILE):
        print(f"🔄 Removing old DB at {settings.DB_FILE}")
        os.remove(settings.DB_FILE)

def create_admin(username: str, password: str):
    insert_many("users", [{
        "name": "Administrator",
        "username": username,
        "password_hash": hash_password(password),
        "permissions": ",".join(ALL_PERMISSIONS),
    }])

def main():
    reset_db()
    ensure_schema()

    username = os.getenv("OCCAPI_ADMIN_USER", "admin")
    password = os.getenv("OCCAPI_ADMIN_PASSWORD") or getpass.getpass(f"Password for {username}: ")
    create_admin(username, password)

    print(f"✅ Database created at {settings.DB_FILE} with user {username}")

if __name__ == "__main__":
    main()
