"""Command-line front-ends for vocabcore."""
