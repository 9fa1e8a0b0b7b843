"""console_chat_demo - Interactive per-user chat with tools

Core Philosophy: "The loop is explicit"
=======================================
Chat SDKs often hide tool calling behind an automatic middleware: you send
messages, tools run somewhere inside, and a final answer falls out. That is
convenient until a tool hangs, the model loops on tool calls forever, or a
half-finished turn leaves the stored history with a dangling tool result.

This demo drives the loop by hand:

    User input
      -> SessionDriver          (per-user lock, clear command)
        -> ContextStore         (get_or_create history)
        -> TurnOrchestrator     (stream -> tools -> stream ... -> answer)
             -> CompletionStreamAdapter  (OpenAI streaming + tool deltas)
             -> ToolCatalog              (validate, invoke, serialize)
      <- answer, history committed only if the turn finished

Typical Flow:
-------------
    User: "Log X then tell me the weather in London"

    Round 1: model -> tool_calls [log(message="X")]
             tool  -> "true"
    Round 2: model -> tool_calls [get_weather(location="London")]
             tool  -> {"Location": "London, UK", ...}
    Round 3: model -> "It's 16°C and partly cloudy in London."

Type 'clear my context' to drop your conversation state, 'exit' to quit.
"""
