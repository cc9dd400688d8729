"""Spaced-repetition review scheduling for vocabulary and quiz items."""
