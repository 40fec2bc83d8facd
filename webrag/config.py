EMBEDDING = {
    "model": "text-embedding-004",
    "endpoint": "https://generativelanguage.googleapis.com/v1beta/models/text-embedding-004:embedContent",
    "dimensions": 768,
    # Longer inputs are cut before the request is sent
    "max_input_chars": 5000,
    "max_concurrency": 4,
    "max_retries": 3,
    "timeout_s": 30.0,
}

CHUNKING = {
    "main": {"size": 500},
}

VECTOR_DB = {
    "index_name": "scrapewebsite",
    "dimensions": 768,
    "metric": "COSINE",
    "ready_timeout_s": 60.0,
    # After writing a URL's new records, drop its records with other ids
    "replace_on_reingest": True,
    # Milvus varchar cap for stored text
    "max_text_chars": 32000,
    # Batch size when paging through query results
    "page_size": 1000,
}

RETRIEVAL = {
    "top_k": 5,
}

LLM = {
    "endpoint": "https://openrouter.ai/api/v1/chat/completions",
    "model": "meta-llama/llama-3.3-70b-instruct:free",
    "max_tokens": 1024,
    "temperature": 0.2,
    "timeout_s": 60.0,
}

ANALYSIS = {
    "summary_input_chars": 8000,
    "facet_input_chars": 6000,
    "facets_enabled": True,
}

SOURCES = {
    "user_agent": (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
    ),
    "request_timeout_s": 20.0,
    "max_page_bytes": 5 * 1024 * 1024,
}
