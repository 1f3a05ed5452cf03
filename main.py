import asyncio
import json
import os
import sys
import uuid

# Ensure src is in python path
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from src.core.agent import create_search_agent
from src.utils.exceptions import ScoutError
from src.utils.logging import setup_logging

MODES = ("direct", "optimized", "agentic")


def _print_web_results(response: dict) -> None:
    for i, item in enumerate(response["web_results"], start=1):
        print(f"  [{i}] {item['title']}")
        print(f"      {item['url']} ({item['source']})")
    if response.get("sources"):
        print(f"\n  Queries merged: {', '.join(response['sources'])}")


async def main():
    setup_logging(level="WARNING")

    print("==========================================")
    print("  Scout - Brave Search Assistant")
    print("==========================================")

    query = input("\nEnter your search: ")
    if not query.strip():
        print("Empty query. Exiting.")
        return

    mode = input(f"Search mode ({'/'.join(MODES)}) [optimized]: ").strip().lower() or "optimized"
    if mode not in MODES:
        mode = "optimized"

    agent = create_search_agent()
    session_id = f"cli-{uuid.uuid4().hex[:8]}"

    print(f"\n[1/2] Running {mode} search...")
    try:
        if mode == "agentic":
            answer = await agent.agentic_search(session_id, query)
            data = {"query": query, "answer": answer}
        elif mode == "direct":
            data = (await agent.direct_search(session_id, query)).to_dict()
        else:
            data = (await agent.optimized_search(session_id, query)).to_dict()

        filename = "search_results.json"
        with open(filename, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

        print(f"\n[2/2] Results saved to {filename}")
        print("\n" + "="*42)
        if mode == "agentic":
            print(data["answer"])
        else:
            print(f"  {data['total_results']} web results")
            print("="*42 + "\n")
            _print_web_results(data)
        print("\n" + "="*42)

    except ScoutError as e:
        print(f"\nERROR: Search failed: {e.message}")
        if e.details:
            print(f"       {e.details}")
    finally:
        await agent.close()

if __name__ == "__main__":
    try:
        asyncio.run(main())
    except KeyboardInterrupt:
        print("\nInterrupted by user.")
