"""Minimal worker speaking the agentlink line protocol on stdio.

Modes (first argument):
  echo    ready, then echo each input text back as output
  env     ready, then reply with the value of the environment variable named by each input
  silent  exit without writing anything
"""

import json
import os
import sys


def send(message: dict) -> None:
    sys.stdout.write(json.dumps(message) + "\n")
    sys.stdout.flush()


def main() -> None:
    mode = sys.argv[1] if len(sys.argv) > 1 else "echo"
    if mode == "silent":
        return
    send({"type": "ready"})
    for line in sys.stdin:
        text = json.loads(line)["text"]
        if mode == "env":
            send({"type": "output", "text": os.environ.get(text, "")})
        else:
            send({"type": "output", "text": text})


if __name__ == "__main__":
    main()
