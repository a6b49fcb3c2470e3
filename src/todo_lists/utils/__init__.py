"""Utility helpers for the todo list core."""
