"""Kernel: question-answering assistant for HackOverflow participants."""

__version__ = "0.1.0"
