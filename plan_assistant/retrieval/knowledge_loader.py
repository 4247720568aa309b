"""
Knowledge Loader
Turns a CSV of travel tips into knowledge base documents

Expected columns:
    text (required), id, city, country, category, source (optional)
"""

import hashlib
from typing import Any, Dict, List, Tuple

import pandas as pd
from loguru import logger

from .knowledge_base import KnowledgeBase

METADATA_COLUMNS = ("city", "country", "category", "source")


def _document_id(text: str) -> str:
    # Stable id so re-importing the same tip replaces it
    return hashlib.sha1(text.encode("utf-8")).hexdigest()[:16]


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, float) and pd.isna(value)) or str(value).strip() == ""


def frame_to_documents(
    df: pd.DataFrame
) -> Tuple[List[str], List[str], List[Dict[str, Any]]]:
    """
    Convert a tips DataFrame into (texts, ids, metadatas)

    Rows without text are skipped; later rows win over earlier rows with the
    same id.
    """
    if "text" not in df.columns:
        raise ValueError("Knowledge file must have a 'text' column")

    documents: Dict[str, Tuple[str, Dict[str, Any]]] = {}
    for _, row in df.iterrows():
        text = row.get("text")
        if _is_blank(text):
            continue
        text = str(text).strip()

        raw_id = row.get("id")
        doc_id = str(raw_id).strip() if not _is_blank(raw_id) else _document_id(text)

        metadata = {
            column: str(row.get(column)).strip()
            for column in METADATA_COLUMNS
            if column in df.columns and not _is_blank(row.get(column))
        }
        documents[doc_id] = (text, metadata)

    ids = list(documents)
    texts = [documents[i][0] for i in ids]
    metadatas = [documents[i][1] for i in ids]
    return texts, ids, metadatas


async def import_knowledge(
    knowledge_base: KnowledgeBase,
    filepath: str,
    batch_size: int = 64,
    limit: int = 10000
) -> int:
    """
    Load a CSV of tips into the knowledge base in batches

    Returns:
        int: Number of documents written
    """
    logger.info(f"Importing knowledge from {filepath}")
    df = pd.read_csv(filepath, nrows=limit)
    logger.info(f"Loaded {len(df)} rows")

    texts, ids, metadatas = frame_to_documents(df)

    total = 0
    for start in range(0, len(texts), batch_size):
        end = start + batch_size
        total += await knowledge_base.add_documents(
            texts[start:end], ids[start:end], metadatas[start:end]
        )
        logger.info(f"Imported {total}/{len(texts)} documents")

    return total
