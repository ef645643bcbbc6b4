"""Document parsing — multi-document YAML in and out."""

import yaml


def load_documents(text: str) -> list[dict]:
    """Parse a multi-document YAML string, keeping only mapping documents."""
    docs = []
    for doc in yaml.safe_load_all(text):
        if not doc or not isinstance(doc, dict):
            continue
        docs.append(doc)
    return docs


def dump_documents(docs: list[dict]) -> str:
    """Render documents as multi-document YAML, preserving key order."""
    return yaml.safe_dump_all(docs, default_flow_style=False, sort_keys=False)
