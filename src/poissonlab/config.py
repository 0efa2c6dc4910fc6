from pydantic_settings import BaseSettings, SettingsConfigDict

from poissonlab.analysis.sim_models import ArrivalMethod, TerminalSampler


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="PL_",
    )

    # Default process parameters
    default_lam: float = 2.0
    default_mu: float = 0.5
    default_t_max: float = 20.0
    default_num_simulations: int = 5000

    # Widget bounds
    lam_min: float = 0.1
    lam_max: float = 5.0
    lam_step: float = 0.1
    mu_min: float = 0.1
    mu_max: float = 2.0
    mu_step: float = 0.05
    t_max_min: float = 10.0
    t_max_max: float = 50.0
    t_max_step: float = 1.0
    num_simulations_min: int = 1000
    num_simulations_step: int = 1000

    # Monte Carlo simulation
    max_simulations: int = 1_000_000
    max_expected_arrivals: float = 1_000_000  # cap on lam * t_max
    arrival_method: ArrivalMethod = ArrivalMethod.SEQUENTIAL
    terminal_sampler: TerminalSampler = TerminalSampler.GAMMA
    batch_size: int = 5000  # only used by the "batch" arrival method
    seed: int | None = None

    # Charts
    histogram_bins: int = 50
    chart_dpi: int = 100
    chart_cache_size: int = 32

    # API Server
    api_host: str = "127.0.0.1"
    api_port: int = 8000
    cors_origins: list[str] = ["http://localhost:8501"]

    # Logging
    log_dir: str = "logs"
