import os
from dotenv import load_dotenv
from dataclasses import dataclass
from typing import Optional, Dict, Any, Callable

load_dotenv()


class EnvConfig:
    """Environment lookup with optional casting and fallback names.

    Usage: EnvConfig.get('LANDSCAPE_TOP_SUPPORT_RATIO', cast=float, aliases=['TOP_SUPPORT_RATIO'])
    """

    @staticmethod
    def get(name: str, default: Any = None, cast: Optional[Callable] = None, aliases: Optional[list] = None):
        aliases = aliases or []
        for key in (name, *aliases):
            val = os.getenv(key)
            if val is not None:
                if cast is not None:
                    try:
                        return cast(val)
                    except Exception as exc:
                        raise ValueError(f"Invalid value for {key}: {exc}")
                return val
        return default


def _as_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


VALID_LOG_LEVELS = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']


@dataclass
class BaseConfig:
    """Shared env lookup and validation hook for config dataclasses."""

    @classmethod
    def _env(cls, name: str, default: Any = None, cast: Optional[Callable] = None, aliases: Optional[list] = None):
        return EnvConfig.get(name, default=default, cast=cast, aliases=aliases)

    def validate(self, required: bool = True):
        """Subclasses raise ValueError on invalid settings."""
        return None


@dataclass
class AnalysisConfig(BaseConfig):
    """Runtime knobs for the structural analysis engine.

    Scoring weights are deliberately absent; they live as named constants on
    the calculators and agents that use them.
    """
    top_support_ratio: float = 0.3  # Share of claims treated as high-support
    max_dissent_voices: int = 5
    strict_builders: bool = False  # Re-raise shape builder failures instead of falling back
    log_level: str = 'INFO'

    def __post_init__(self):
        # Only consult env vars when the dataclass default is in use
        if self.top_support_ratio == AnalysisConfig.top_support_ratio:
            self.top_support_ratio = self._env(
                'LANDSCAPE_TOP_SUPPORT_RATIO', default=self.top_support_ratio, cast=float,
                aliases=['TOP_SUPPORT_RATIO'],
            )
        if self.max_dissent_voices == AnalysisConfig.max_dissent_voices:
            self.max_dissent_voices = self._env(
                'LANDSCAPE_MAX_DISSENT_VOICES', default=self.max_dissent_voices, cast=int,
            )
        if self.strict_builders is AnalysisConfig.strict_builders:
            self.strict_builders = self._env(
                'LANDSCAPE_STRICT_BUILDERS', default=self.strict_builders, cast=_as_bool,
            )
        if self.log_level == AnalysisConfig.log_level:
            self.log_level = self._env('LANDSCAPE_LOG_LEVEL', default=self.log_level, aliases=['LOG_LEVEL'])
        self.log_level = str(self.log_level).upper()

    def validate(self, required: bool = True) -> None:
        if not 0 < self.top_support_ratio <= 1:
            raise ValueError('top_support_ratio must be in (0, 1]')
        if self.max_dissent_voices < 1:
            raise ValueError('max_dissent_voices must be >= 1')
        if self.log_level not in VALID_LOG_LEVELS:
            raise ValueError(f'log_level must be one of {VALID_LOG_LEVELS}')


class AppConfig:
    """Top-level configuration for the analysis engine.

    `AppConfig.analysis` holds the engine knobs; `from_env()` builds a
    validated instance from the current environment and .env file.
    """

    analysis: AnalysisConfig = AnalysisConfig()

    def __init__(self, analysis: Optional[AnalysisConfig] = None):
        if analysis is not None:
            self.analysis = analysis

    def validate_all(self, strict: bool = False) -> None:
        self.analysis.validate(required=strict)

    @staticmethod
    def check_availability() -> Dict[str, Dict[str, Any]]:
        """Report whether each sub-config can be built and validated from the environment.

        Each entry holds `available` and, when unavailable, the `reason`.
        """
        results: Dict[str, Dict[str, Any]] = {}
        configs: Dict[str, BaseConfig] = {}
        # Fresh instances pick up the environment as it is now
        try:
            configs['analysis'] = AnalysisConfig()
        except ValueError as e:
            results['analysis'] = {'available': False, 'reason': str(e)}
        for name, cfg in configs.items():
            try:
                cfg.validate(required=True)
                results[name] = {'available': True, 'reason': None}
            except Exception as e:
                results[name] = {'available': False, 'reason': str(e)}
        return results

    @staticmethod
    def from_env(strict: bool = False) -> 'AppConfig':
        config = AppConfig(analysis=AnalysisConfig())
        config.validate_all(strict=strict)
        return config
