"""agentlink CLI bootstrap."""

from agentlink.cli import main

if __name__ == "__main__":
    main()
