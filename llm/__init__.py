"""
LLM integration for receipt extraction.

This package contains:
- client: Async OpenAI extraction client
- prompts: Extraction instruction and receipt JSON schema
"""
