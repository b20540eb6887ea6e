"""Image storage operations: command execution, GPT inspection and resizing."""
