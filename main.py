"""
Entry point script for the ui_actions application.
This allows running the app directly from the project root.
"""
from ui_actions.main import main

if __name__ == "__main__":
    main()
