# CLI for project-switcher
