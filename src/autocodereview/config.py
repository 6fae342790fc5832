"""
Configuration Management

시스템 설정 관리
"""

import os
import json
import yaml
from dataclasses import dataclass, asdict
from typing import Optional, Dict, Any, Mapping, Iterable
from pathlib import Path
import logging

from .exceptions import ConfigurationError
from .models.run import PullRequestTarget, RunContext


CREDENTIAL_ENV_VAR = "ANALYSIS_API_KEY"
GITHUB_TOKEN_ENV_VAR = "GITHUB_TOKEN"


@dataclass
class RunConfig:
    """실행 경로 및 브랜치 설정"""
    base_branch: str = "main"
    working_dir: str = "."
    diff_path: str = "diffs.txt"
    output_path: str = "review.md"
    remote: str = "origin"


@dataclass
class AnalysisConfig:
    """분석 서비스 설정"""
    backend: str = "http"  # 'http' or 'openai'
    endpoint: Optional[str] = None
    model: str = "gpt-4o-mini"
    timeout_seconds: int = 60
    max_chunk_size: int = 60000  # characters per request
    retry_count: int = 3
    retry_backoff: float = 2.0
    max_workers: int = 4
    max_findings: Optional[int] = None


@dataclass
class GitHubConfig:
    """GitHub API 설정"""
    api_base_url: str = "https://api.github.com"
    repository: Optional[str] = None
    pr_number: Optional[int] = None
    timeout_seconds: int = 30


@dataclass
class LoggingConfig:
    """로깅 설정"""
    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file_path: Optional[str] = None
    max_file_size: int = 10 * 1024 * 1024  # 10MB
    backup_count: int = 5


def _optional_int(value: Optional[str]) -> Optional[int]:
    return int(value) if value not in (None, "") else None


def _pr_number_from_event(event_path: Optional[str]) -> Optional[int]:
    """Read ``pull_request.number`` from a GitHub Actions event payload."""
    if not event_path or not Path(event_path).exists():
        return None
    with open(event_path, 'r', encoding='utf-8') as f:
        event = json.load(f)
    number = (event.get('pull_request') or {}).get('number')
    return int(number) if number is not None else None


@dataclass
class AppConfig:
    """
    전체 애플리케이션 설정

    Secrets are not part of the configuration: the analysis credential and
    the GitHub token are read from the environment when the run context is
    built, so they never end up in YAML files or ``to_dict()`` output.
    """
    run: RunConfig
    analysis: AnalysisConfig
    github: GitHubConfig
    logging: LoggingConfig

    @classmethod
    def default(cls) -> "AppConfig":
        return cls(run=RunConfig(), analysis=AnalysisConfig(), github=GitHubConfig(), logging=LoggingConfig())

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "AppConfig":
        """환경 변수에서 설정 로드"""
        env = os.environ if env is None else env

        pr_number = _optional_int(env.get("PR_NUMBER"))
        if pr_number is None:
            pr_number = _pr_number_from_event(env.get("GITHUB_EVENT_PATH"))

        return cls(
            run=RunConfig(
                base_branch=env.get("REVIEW_BASE_BRANCH") or env.get("GITHUB_BASE_REF") or "main",
                working_dir=env.get("REVIEW_WORKING_DIR", "."),
                diff_path=env.get("REVIEW_DIFF_PATH", "diffs.txt"),
                output_path=env.get("REVIEW_OUTPUT_PATH", "review.md"),
                remote=env.get("REVIEW_GIT_REMOTE", "origin"),
            ),
            analysis=AnalysisConfig(
                backend=env.get("ANALYSIS_BACKEND", "http"),
                endpoint=env.get("ANALYSIS_ENDPOINT") or None,
                model=env.get("ANALYSIS_MODEL", "gpt-4o-mini"),
                timeout_seconds=int(env.get("ANALYSIS_TIMEOUT", "60")),
                max_chunk_size=int(env.get("MAX_CHUNK_SIZE", "60000")),
                retry_count=int(env.get("RETRY_COUNT", "3")),
                retry_backoff=float(env.get("RETRY_BACKOFF", "2.0")),
                max_workers=int(env.get("MAX_WORKERS", "4")),
                max_findings=_optional_int(env.get("MAX_FINDINGS")),
            ),
            github=GitHubConfig(
                api_base_url=env.get("GITHUB_API_URL", "https://api.github.com"),
                repository=env.get("GITHUB_REPOSITORY") or None,
                pr_number=pr_number,
                timeout_seconds=int(env.get("GITHUB_TIMEOUT", "30")),
            ),
            logging=LoggingConfig(
                level=env.get("LOG_LEVEL", "INFO"),
                format=env.get("LOG_FORMAT", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
                file_path=env.get("LOG_FILE"),
                max_file_size=int(env.get("LOG_MAX_SIZE", str(10 * 1024 * 1024))),
                backup_count=int(env.get("LOG_BACKUP_COUNT", "5")),
            ),
        )

    @classmethod
    def from_yaml(cls, config_path: str) -> "AppConfig":
        """YAML 파일에서 설정 로드"""
        config_file = Path(config_path)
        if not config_file.exists():
            raise ConfigurationError(f"Config file not found: {config_path}")

        try:
            with open(config_file, 'r', encoding='utf-8') as f:
                config_data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(config_data, dict):
            raise ConfigurationError(f"Config file must contain a mapping: {config_path}")

        try:
            return cls.from_dict(config_data)
        except TypeError as e:
            raise ConfigurationError(f"Unknown option in {config_path}: {e}") from e

    @classmethod
    def from_dict(cls, config_data: Dict[str, Any]) -> "AppConfig":
        return cls(
            run=RunConfig(**config_data.get('run', {})),
            analysis=AnalysisConfig(**config_data.get('analysis', {})),
            github=GitHubConfig(**config_data.get('github', {})),
            logging=LoggingConfig(**config_data.get('logging', {})),
        )

    def validate(self) -> None:
        """설정 유효성 검사"""
        errors = []

        if not self.run.base_branch:
            errors.append("Base branch cannot be empty")

        if self.analysis.backend not in {'http', 'openai'}:
            errors.append(f"Unknown analysis backend: {self.analysis.backend}")
        elif self.analysis.backend == 'http' and not self.analysis.endpoint:
            errors.append("Analysis endpoint is required for the http backend")

        if self.analysis.max_chunk_size <= 0:
            errors.append("Max chunk size must be positive")
        if self.analysis.retry_count < 0:
            errors.append("Retry count must be non-negative")
        if self.analysis.retry_backoff < 0:
            errors.append("Retry backoff must be non-negative")
        if self.analysis.max_workers <= 0:
            errors.append("Max workers must be positive")
        if self.analysis.max_findings is not None and self.analysis.max_findings <= 0:
            errors.append("Max findings must be positive")

        if self.github.repository is not None and self.github.repository.count('/') != 1:
            errors.append("Repository must be in format 'owner/repo'")
        if self.github.pr_number is not None and self.github.pr_number <= 0:
            errors.append("PR number must be positive")

        # 로그 레벨 검증
        valid_log_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if self.logging.level.upper() not in valid_log_levels:
            errors.append(f"Invalid log level: {self.logging.level}")

        if errors:
            raise ConfigurationError(f"Configuration validation failed: {'; '.join(errors)}")

    def to_dict(self) -> Dict[str, Any]:
        """설정을 딕셔너리로 변환"""
        return {
            'run': asdict(self.run),
            'analysis': asdict(self.analysis),
            'github': asdict(self.github),
            'logging': asdict(self.logging),
        }


class ConfigManager:
    """설정 관리자"""

    def __init__(self, config: Optional[AppConfig] = None):
        self._config = config or AppConfig.from_env()

    @property
    def config(self) -> AppConfig:
        """현재 설정 반환"""
        return self._config

    def update_config(self, **kwargs) -> None:
        """
        설정 업데이트

        Keys are ``section.field`` (for example ``analysis.retry_count``);
        ``None`` values are ignored so unset CLI options keep file/env values.
        """
        config_dict = self._config.to_dict()

        for key, value in kwargs.items():
            if value is None:
                continue
            section, _, field_name = key.partition('.')
            if section not in config_dict or field_name not in config_dict[section]:
                raise ConfigurationError(f"Unknown configuration key: {key}")
            config_dict[section][field_name] = value

        self._config = AppConfig.from_dict(config_dict)

    def build_run_context(self, env: Optional[Mapping[str, str]] = None, diff_from_file: bool = False, publish: bool = True) -> RunContext:
        """
        Validate the configuration and build the run context.

        Args:
            env: Environment holding the secrets (defaults to os.environ)
            diff_from_file: Parse ``run.diff_path`` instead of running git
            publish: Whether a pull request target is required

        Raises:
            ConfigurationError: On invalid settings or missing secrets
        """
        env = os.environ if env is None else env
        self._config.validate()

        credential = env.get(CREDENTIAL_ENV_VAR, "").strip()
        if not credential:
            raise ConfigurationError(f"{CREDENTIAL_ENV_VAR} is not set")

        target = None
        if publish:
            if not self._config.github.repository or not self._config.github.pr_number:
                raise ConfigurationError("Repository and PR number are required to publish the review")
            target = PullRequestTarget.from_repository(self._config.github.repository, self._config.github.pr_number)

        run = self._config.run
        return RunContext(
            working_dir=Path(run.working_dir),
            base_branch=run.base_branch,
            diff_path=Path(run.diff_path),
            output_path=Path(run.output_path),
            credential=credential,
            target=target,
            diff_from_file=diff_from_file,
        )


class SecretRedactingFilter(logging.Filter):
    """Masks registered secret values in log records."""

    MASK = "***"

    def __init__(self, secrets: Iterable[str] = ()):
        super().__init__()
        self.secrets = [s for s in secrets if s]

    def filter(self, record: logging.LogRecord) -> bool:
        if not self.secrets:
            return True
        message = record.getMessage()
        redacted = message
        for secret in self.secrets:
            redacted = redacted.replace(secret, self.MASK)
        if redacted != message:
            record.msg = redacted
            record.args = None
        return True


def setup_logging(config: LoggingConfig, secrets: Iterable[str] = ()) -> None:
    """로깅 설정"""
    level = getattr(logging, config.level.upper(), logging.INFO)
    logging.basicConfig(level=level, format=config.format)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # 파일 로깅이 설정된 경우 로테이션 설정
    if config.file_path:
        from logging.handlers import RotatingFileHandler

        handler = RotatingFileHandler(
            config.file_path,
            maxBytes=config.max_file_size,
            backupCount=config.backup_count,
        )
        handler.setFormatter(logging.Formatter(config.format))
        root_logger.addHandler(handler)

    redactor = SecretRedactingFilter(secrets)
    for handler in root_logger.handlers:
        handler.addFilter(redactor)
