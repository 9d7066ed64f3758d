"""STORYFRAME utilities."""
