import os
import sys

# Ensure the package is importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import ChatAnthropic, LitemsgError, PromptTemplate


def main():
    # 1. Initialize the LLM directly
    llm = ChatAnthropic(
        model="claude-3-5-haiku-latest",
        temperature=0.7,
        max_tokens=512,
    )

    # 2. Prepare messages
    prompt = PromptTemplate()
    prompt.add_system("You are a helpful assistant.")
    prompt.add_user("Tell me a joke.")

    # 3. Call the model
    print("Sending request...")
    try:
        response = llm.invoke(prompt)
        print(f"Response: {response.text}")
        print(f"Stop reason: {response.stop_reason}")
        print(f"Usage: {response.usage.to_wire()}")
    except LitemsgError as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    main()
