"""LLM provider backends and tracing for batch summarization."""
