SUMMARY_PROMPT = """Summarize in max 15 words: "{content}"

Reply with ONLY the summary, no quotes."""
