import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from occapi.providers import get_provider, save_provider
from occapi.schema import ensure_schema

# Example providers; base URLs must serve an OCCAPI institution resource.
PROVIDERS = [
    {
        "id": "uni_example",
        "label": "Example University",
        "base_url": "https://occapi.example.edu/occapi/v1/hei/example.edu",
        "hei_id": "example.edu",
        "ounit_filter": True,
        "status": True,
        "description": "Course catalogue of Example University",
    },
]

def seed_providers():
    seeded = 0
    for provider in PROVIDERS:
        if get_provider(provider["id"]):
            print(f"⏭  Provider {provider['id']} already exists")
            continue
        save_provider(provider)
        seeded += 1
    return seeded

def main():
    ensure_schema()
    seeded = seed_providers()
    print(f"✅ Seeded {seeded} providers")

if __name__ == "__main__":
    main()
