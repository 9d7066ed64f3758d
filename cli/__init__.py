"""STORYFRAME command line interface."""
