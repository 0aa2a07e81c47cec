from .integrity_validator import IntegrityValidator, ValidatorState, default_signal_for

__all__ = ['IntegrityValidator', 'ValidatorState', 'default_signal_for']
