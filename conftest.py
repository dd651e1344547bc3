"""Global pytest configuration."""

import os

# Keep tests on the in-memory store and the stub model client regardless of the shell
os.environ["STORAGE_BACKEND"] = "memory"
os.environ.pop("GEMINI_API_KEY", None)
os.environ.pop("OPENAI_API_KEY", None)
