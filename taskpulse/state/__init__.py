"""Client-side application state: session, tasks, views and suggestions."""
