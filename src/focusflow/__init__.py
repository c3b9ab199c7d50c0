"""FocusFlow streak engine."""
