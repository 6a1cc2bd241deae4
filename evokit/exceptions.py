class EvoKitError(Exception):
    """Base for all evokit exceptions."""

    pass


# High-level families
class ConfigurationError(EvoKitError, ValueError):
    """Invalid engine, operator or limit configuration."""

    pass


class InvalidGeneError(EvoKitError, ValueError):
    """Invalid gene or chromosome construction."""

    pass


class EvaluationError(EvoKitError):
    """Fitness evaluation failures."""

    pass


# Configuration subtypes
class EvaluatorContractError(ConfigurationError):
    """Evaluator returned a wrong-sized or partially evaluated population."""

    pass


class ChromosomeIndexError(ConfigurationError, IndexError):
    """Chromosome index outside the genotype."""

    pass


# Evaluation subtypes
class EvaluationCancelledError(EvaluationError):
    """Pending fitness computations were cancelled."""

    pass
