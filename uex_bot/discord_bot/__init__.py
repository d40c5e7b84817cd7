"""Discord gateway bot and slash commands."""
