import asyncio
import os
import sys

# Ensure the package is importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import ChatAnthropic


async def main():
    if not os.getenv("ANTHROPIC_API_KEY"):
        print("Please set ANTHROPIC_API_KEY environment variable.")
        return

    # 1. Configure your llm
    # It supports both sync (invoke/stream) and async (ainvoke/astream) methods
    async with ChatAnthropic(
        model="claude-3-5-haiku-latest",
        temperature=0.7,
        timeout=10,
        max_tokens=1000,
    ) as llm:
        # 2. Run llm asynchronously without streaming
        print("\n--- 1. Simple Async Invocation ---")
        messages = [{"role": "user", "content": "Tell me a haiku about recursion."}]
        response = await llm.ainvoke(messages)

        print(f"Response:\n{response.text}")

        # 3. Run llm asynchronously with streaming, cancelling after a few chunks
        print("\n--- 2. Async Streaming ---")
        stream_messages = [{"role": "user", "content": "Count from 1 to 50 slowly."}]
        print("Streaming Response: ", end="", flush=True)

        stream = await llm.astream(stream_messages)
        chunks = 0
        async for update in stream:
            if update.text_delta:
                print(update.text_delta, end="", flush=True)
                chunks += 1
            if chunks == 5:
                await stream.cancel("Enough counting")
                break

        result = stream.result()
        print(f"\n\nStatus: {result.status.value}")
        if result.partial is not None:
            print(f"Partial text: {result.partial.text!r}")


if __name__ == "__main__":
    asyncio.run(main())
