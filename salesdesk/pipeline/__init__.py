"""Lead pipeline rules: stages, task titles, completion flows."""
