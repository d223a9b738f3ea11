import os


def get_supported_env_variables():
    return {
        "SEARCH_MEMORY_QDRANT_HOST": "",
        "SEARCH_MEMORY_QDRANT_PORT": "6333",
        "SEARCH_MEMORY_QDRANT_API_KEY": "",
        "SEARCH_MEMORY_QDRANT_PATH": "data/local_vector_memory/",
        "SEARCH_MEMORY_LOG_LEVEL": "INFO",
        "SEARCH_MEMORY_QUERY_PAGE_SIZE": "50",
    }


def get_env(name):
    """Utility to get an environment variable value. To be used only for supported search memory envs.
    - covers default supported variables and their default value
    - unknown variables are read as-is, with no default
    """

    default_env_variables = get_supported_env_variables()

    default = None
    if name in default_env_variables:
        default = default_env_variables[name]

    return os.getenv(name, default)
