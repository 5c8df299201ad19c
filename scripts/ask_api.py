# scripts/ask_api.py
import sys

import requests

URL = "http://127.0.0.1:8000/chat"


def ask(q):
    r = requests.post(URL, json={"query": q}, timeout=30)
    r.raise_for_status()
    data = r.json()
    print("\nQ:", q)
    print("mode:", data.get("mode"))
    print("answer:\n", data.get("answer"))
    print("meta:", data.get("meta"))
    return data


if __name__ == "__main__":
    for q in sys.argv[1:] or ["営業時間は何時ですか", "定休日はいつ"]:
        ask(q)
