# scripts/ask.py
from faqbot.config import Settings
from faqbot.generator import generate_reply
from faqbot.resolver import Resolver


def main():
    settings = Settings.from_env()
    resolver = Resolver.from_settings(settings)

    print("Type a question ('exit' to quit).\n")
    while True:
        try:
            q = input("Question: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            break

        if q.lower() in {"exit", "quit"}:
            break
        if not q:
            continue

        hit = resolver.resolve(q)
        if hit is None:
            print("[Fallback] no confident FAQ match")
            print(generate_reply(q, settings))
        else:
            print(f"[{hit.via_method} {hit.score:.3f}] {hit.question}")
            print(hit.answer)
        print("-" * 70)


if __name__ == "__main__":
    main()
