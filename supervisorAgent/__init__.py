"""Supervisor orchestration kernel for multi-agent LangGraph conversations."""
