# scripts/check_corpus.py
"""
Load the FAQ source, embed every question and print a summary.
Useful after editing the spreadsheet: shows which rows were kept and how many
embeddings succeeded.

    FAQ_SHEET_URL=... OPENAI_API_KEY=... python scripts/check_corpus.py
"""
import sys
import time

from tqdm import tqdm

from faqbot.config import Settings
from faqbot.corpus_loader import load_records
from faqbot.embeddings import get_embedding_provider
from faqbot.errors import SourceUnavailable
from faqbot.faq_index import build_generation


def main() -> int:
    settings = Settings.from_env()
    source = sys.argv[1] if len(sys.argv) > 1 else settings.faq_source

    # 1. Load FAQs
    try:
        records = load_records(source, timeout=settings.fetch_timeout)
    except SourceUnavailable as e:
        print(f"[ERROR] {e}")
        return 1
    print(f"Loaded {len(records)} FAQs from {source or '(none)'}.")

    # 2. Embeddings
    embedder = get_embedding_provider(settings)
    index, report = build_generation(records, embedder, now=time.monotonic(), progress=tqdm)
    print(f"Embedded {report.embedded}/{report.attempted} (failed: {report.failed}), dim={index.dimension}")

    # 3. Show what the lexical stage sees
    for r in index.records:
        print(f"- {r.question}  →  {r.normalized_question}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
