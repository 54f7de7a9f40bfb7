"""
News Chat RAG

Ingests recent news from RSS feeds into a vector store and answers
conversational questions grounded in the retrieved articles.
"""

__version__ = "0.1.0"
