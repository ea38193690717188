THEMES_PROMPT = """Classify this feedback into 1-2 themes. Valid themes: {themes}.

Feedback: "{content}"

Reply with ONLY comma-separated themes, nothing else. Example: reliability, performance"""
