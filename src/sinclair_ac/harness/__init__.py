"""Command-line harness for driving a unit by hand."""
