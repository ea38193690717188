URGENCY_PROMPT = """Rate urgency as: {levels}.
Customer tier: {tier}
Feedback: "{content}"

Reply with ONLY one word: {levels}"""
