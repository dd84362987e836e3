from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Search provider (Exa)
    exa_api_key: str = ""
    search_api_url: str = "https://api.exa.ai/search"
    search_deep_num_results: int = 13
    search_standard_num_results: int = 10
    search_deep_max_characters: int = 1500
    search_standard_max_characters: int = 1000
    search_deep_result_cap: int = 15
    search_standard_result_cap: int = 10

    # Analysis provider
    analysis_provider: str = "dashscope"  # dashscope | openai
    dashscope_api_key: str = ""
    dashscope_api_url: str = "https://dashscope.aliyuncs.com/compatible-mode/v1/chat/completions"
    dashscope_model: str = "qwen-plus-latest"
    openai_api_key: str = ""
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"
    openai_model: str = "gpt-4o"
    analysis_temperature: float = 0.6

    # HTTP behaviour shared by both clients
    http_timeout: float = 30.0
    http_connect_timeout: float = 10.0
    max_retries: int = 3
    retry_base_delay: float = 1.0

    # Research loop
    research_default_depth: int = 3
    research_min_depth: int = 2
    research_max_depth: int = 10

    # App
    report_dir: str = "."
    log_dir: str = "logs"
    cors_origins: str = "http://localhost:3000"
    app_log_level: str = "INFO"
    noisy_log_level: str = "WARNING"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",")]

    @property
    def analysis_api_key(self) -> str:
        if self.analysis_provider.lower().strip() == "openai":
            return self.openai_api_key
        return self.dashscope_api_key

    @property
    def analysis_api_url(self) -> str:
        if self.analysis_provider.lower().strip() == "openai":
            return self.openai_api_url
        return self.dashscope_api_url

    @property
    def analysis_model(self) -> str:
        if self.analysis_provider.lower().strip() == "openai":
            return self.openai_model
        return self.dashscope_model


settings = Settings()
