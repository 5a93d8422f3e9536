#!/usr/bin/env python
import sys
from rich.console import Console
from ui_actions.cli import main as cli_main

console = Console()

def main() -> None:

    try:
        sys.exit(cli_main())
    except KeyboardInterrupt:
        console.print("\n[dim]Interrupted.[/dim]")
        sys.exit(130)
    except Exception as e:
        console.print(f"[bold red]ui-actions failed:[/bold red] {e}")
        sys.exit(1)

if __name__ == "__main__":
    main()
