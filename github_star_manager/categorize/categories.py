"""Keyword patterns used to sort stars into topical lists."""

import re

CATEGORIES: dict[str, str] = {
    "ai": r"ai|machine-learning|ml|deep-learning|neural|llm|gpt|transformer|nlp",
    "web-servers": r"server|http|nginx|apache|caddy|express|fastapi|flask",
    "standards": r"rfc|spec|standard|protocol|w3c|ecma",
    "awesome-lists": r"awesome-|awesome |curated|list",
    "typescript": r"typescript|ts|deno|tsx",
    "python": r"python|py|django|flask|fastapi|pandas|numpy",
    "golang": r"golang|go-|go |gin|echo|fiber",
    "testing": r"test|testing|jest|pytest|mocha|cypress",
    "devops": r"docker|kubernetes|k8s|ci-cd|jenkins|github-actions",
    "databases": r"database|db|sql|postgres|mysql|mongodb|redis",
}

COMPILED: dict[str, re.Pattern] = {name: re.compile(pattern, re.IGNORECASE) for name, pattern in CATEGORIES.items()}
