import os
import sys

# Ensure the package is importable
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..", "src")))

from litemsg import ChatAnthropic, LitemsgError, PromptTemplate, Tool, ArgsSchema


# 1. Define tool functions
def get_weather(location: str, unit: str = "celsius") -> str:
    """Get weather for a given location and unit.

    Args:
        location: The city and state, e.g. San Francisco, CA
        unit: The unit of temperature, either 'celsius' or 'fahrenheit'
    """
    return f"The weather in {location} is 25 degrees {unit}."


# 2. Create tool definition
weather_tool = Tool(
    name="get_weather",
    description="Get the weather for a location",
    args_schema=[
        ArgsSchema(
            name="location",
            type=str,
            description="The city and state, e.g. San Francisco, CA",
        ),
        ArgsSchema(
            name="unit",
            type=str,
            description="The unit of temperature",
            enum=["celsius", "fahrenheit"],
            required=False,
        ),
    ],
)

# 3. Configure the LLM
llm = ChatAnthropic(
    model="claude-3-5-haiku-latest",
    temperature=0.0,
    timeout=10,
    max_tokens=1000,
)


def main():
    # 4. Bind tools to the LLM
    # This registers the tools with the model instance for all subsequent calls
    llm.bind_tools(tools=[weather_tool])

    user_input = "What is the weather in Tokyo?"
    prompt = PromptTemplate()
    prompt.add_system("You are a helpful assistant.")
    prompt.add_user(user_input)

    print("--- LLM with Bound Tools ---")
    print(f"User: {user_input}")

    try:
        # 5. Stream the first turn; tool input arrives in fragments
        response = llm.stream(prompt).final_message()

        if response.failed_blocks:
            print(f"Tool calls with malformed input: {response.failed_blocks}")
            return

        # 6. Run each tool and send the results back
        prompt.add_response(response)
        for tool_use in response.tool_uses:
            print(f"Tool Call: {tool_use.name}({tool_use.arguments})")
            output = get_weather(**tool_use.arguments)
            prompt.add_tool_result(tool_use_id=tool_use.id, output=output)

        if response.stop_reason == "tool_use":
            response = llm.invoke(prompt)

        print(f"Assistant: {response.text}")

    except LitemsgError as e:
        print(f"Error: {e}")


if __name__ == "__main__":
    main()
