# occapi/schema.py
"""
Ensures all tables (and new columns) exist every time the app starts.
Import and call ensure_schema() at the top of any script that touches
the SQLite database so you never lose columns.
"""
from .db import create_table, add_columns_if_missing

def ensure_schema():
    # accounts for the admin UI
    create_table("users", {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "name": "TEXT NOT NULL",
        "username": "TEXT UNIQUE NOT NULL",
        "password_hash": "TEXT NOT NULL",
        "permissions": "TEXT"
    })

    # OCCAPI providers, one per remote endpoint
    create_table("occapi_providers", {
        "id": "TEXT PRIMARY KEY",
        "label": "TEXT NOT NULL",
        "base_url": "TEXT NOT NULL",
        "hei_id": "TEXT NOT NULL",
        "ounit_filter": "INTEGER DEFAULT 0",
        "status": "INTEGER DEFAULT 1",
        "description": "TEXT"
    })

    # shared key/value store for remote data
    create_table("tempstore", {
        "collection": "TEXT NOT NULL",
        "key": "TEXT NOT NULL",
        "value": "TEXT",
        "updated": "INTEGER NOT NULL",
        "PRIMARY KEY (collection, key)": ""
    })

    # local entities
    create_table("hei", {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "label": "TEXT",
        "hei_id": "TEXT UNIQUE NOT NULL",
        "abbreviation": "TEXT",
        "url": "TEXT"
    })

    create_table("ounit", {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "label": "TEXT",
        "ounit_id": "TEXT UNIQUE NOT NULL",
        "ounit_code": "TEXT",
        "abbreviation": "TEXT",
        "url": "TEXT"
    })

    create_table("programme", {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "label": "TEXT",
        "title": "TEXT",
        "code": "TEXT",
        "description": "TEXT",
        "ects": "INTEGER",
        "eqf_level_provided": "INTEGER",
        "isced_code": "TEXT",
        "language_of_instruction": "TEXT",
        "length": "INTEGER",
        "url": "TEXT",
        "remote_id": "TEXT",
        "remote_url": "TEXT"
    })

    create_table("course", {
        "id": "INTEGER PRIMARY KEY AUTOINCREMENT",
        "label": "TEXT",
        "title": "TEXT",
        "code": "TEXT",
        "description": "TEXT",
        "learning_outcomes": "TEXT",
        "academic_term": "TEXT",
        "ects": "REAL",
        "language_of_instruction": "TEXT",
        "isced_code": "TEXT",
        "subject_area": "TEXT",
        "other_categorization": "TEXT",
        "url": "TEXT",
        "remote_id": "TEXT",
        "remote_url": "TEXT",
        "meta": "TEXT"
    })

    # entity reference fields (hei, ounit, related_programme)
    create_table("entity_references", {
        "entity_type": "TEXT NOT NULL",
        "entity_id": "INTEGER NOT NULL",
        "field": "TEXT NOT NULL",
        "target_id": "INTEGER NOT NULL",
        "PRIMARY KEY (entity_type, entity_id, field, target_id)": ""
    })

    # extra provider fields
    add_columns_if_missing("occapi_providers", {
        "ounit_filter": "INTEGER DEFAULT 0",
        "description":  "TEXT"
    })
