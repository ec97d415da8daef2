"""
Knowledge Base Voice Assistant

A console assistant that answers typed or spoken questions from a hosted
knowledge base and reads the answers aloud.
"""

__version__ = "1.0.0"
__author__ = "Knowledge Base Assistant Team"
__description__ = "Voice + Text Knowledge Base Question Answering Client"
