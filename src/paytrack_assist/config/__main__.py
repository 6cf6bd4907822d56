"""Print the assist configuration that ``create_orchestrator()`` would use.

    python -m paytrack_assist.config                  # redacted audit with origins
    python -m paytrack_assist.config --profile staging
    python -m paytrack_assist.config --check          # exit 1 without endpoint/key
    python -m paytrack_assist.config --json
"""

from .introspection import main

if __name__ == "__main__":
    main()
