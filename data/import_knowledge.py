"""
Knowledge Import Script
Seeds the travel knowledge base (ChromaDB) with tips from a CSV file

Usage:
    python data/import_knowledge.py [path/to/travel_tips.csv]
"""

import asyncio
import os
import sys

from plan_assistant.config import configure_logging
from plan_assistant.retrieval.knowledge_loader import import_knowledge
from plan_assistant.services import create_services

# Data directory
DATA_DIR = os.getenv("DATA_DIR", "./data")


async def main(filepath: str):
    """Main import function"""
    print("=" * 60)
    print("Travel Knowledge Import Script")
    print("=" * 60)

    services = create_services()
    try:
        total = await import_knowledge(services.knowledge_base, filepath)
        count = await services.vector_index.count()

        print("\n" + "=" * 60)
        print(f"Import Complete! Documents written: {total}, collection size: {count}")
        print("=" * 60)

        print("\n=== Sample Search ===")
        for hit in await services.knowledge_base.search("What should I know before visiting temples?", k=3):
            print(f"  {hit.id} ({hit.distance:.3f}): {hit.text[:80]}")
    finally:
        await services.close()


if __name__ == "__main__":
    configure_logging()
    tips_file = sys.argv[1] if len(sys.argv) > 1 else os.path.join(DATA_DIR, "travel_tips.csv")
    if not os.path.exists(tips_file):
        print(f"Warning: {tips_file} not found")
        sys.exit(1)
    asyncio.run(main(tips_file))
