import os
import sys

# Ensure the package is importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import ChatAnthropic, LitemsgError


def main():
    # 1. Initialize the LLM
    llm = ChatAnthropic(
        model="claude-3-5-haiku-latest",
        temperature=0.7,
        system="You are a poetic assistant.",
    )

    messages = [{"role": "user", "content": "Write a haiku about recursion."}]

    print("User: Write a haiku about recursion.")
    print("Assistant: ", end="", flush=True)

    # 2. Stream the text as it arrives
    try:
        with llm.stream(messages) as stream:
            for text in stream.text_stream:
                print(text, end="", flush=True)
            print()

            # 3. The assembled message is available once the stream completes
            message = stream.final_message()
            print(f"[{message.stop_reason}, {message.usage.output_tokens} output tokens]")

    except LitemsgError as e:
        # A failed or cancelled stream still exposes what had arrived
        print(f"\nError: {e}")


if __name__ == "__main__":
    main()
