"""
Pluggable providers: reasoning (LLM) backends and session stores.
"""
