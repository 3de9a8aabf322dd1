import argparse

from . import config, debug
from .agent.builtin_tools import default_toolbox
from .agent.tool_agent import ToolAgent
from .client import OllamaClient


def main(argv=None):
    parser = argparse.ArgumentParser(prog="toolrelay", description="Chat with a local model, tools enabled.")
    parser.add_argument("--model", default=config.DEFAULT_MODEL)
    parser.add_argument("--host", default=None, help="Model server URL (default: $OLLAMA_HOST)")
    parser.add_argument("--system", default="", help="Optional system prompt")
    parser.add_argument("--debug", action="store_true", help="Print request/response debug lines")
    args = parser.parse_args(argv)

    if args.debug:
        debug.set_verbose(True)

    client = OllamaClient(host=args.host)
    agent = ToolAgent(client)
    toolbox = default_toolbox(client)

    messages = []
    if args.system:
        messages.append({"role": "system", "content": args.system})

    print(f"toolrelay ({args.model} @ {client.host})")
    print("Commands: /models, /unload, /quit\n")

    while True:
        try:
            user_input = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            break

        if not user_input:
            continue
        if user_input == "/quit":
            break
        if user_input == "/models":
            for name in client.list_models({"tools": True}):
                print(f"  {name}")
            continue
        if user_input == "/unload":
            ok = client.unload_model(args.model)
            print("Unloaded." if ok else "Unload failed.")
            continue

        turn = messages + [{"role": "user", "content": user_input}]
        outcome = agent.run(args.model, turn, toolbox.definitions, toolbox)
        if not outcome.ok:
            print(f"[{outcome.status}] {outcome.error}")
            continue

        messages = outcome.transcript(turn)
        for tool_message in outcome.tool_messages:
            print(f"[tool {tool_message.get('name')}] {debug.truncate(tool_message['content'], 200)}")
        print(f"\nAssistant: {outcome.message.get('content', '')}\n")


if __name__ == "__main__":
    main()
