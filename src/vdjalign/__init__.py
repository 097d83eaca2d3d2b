"""
Top-level module, including the package-wide exception and warning hierarchy.

vdjalign aligns immune-repertoire sequencing reads against a V/D/J/C gene library in parallel and
reassembles the results in input order for downstream writers and statistics.
"""


# Exceptions and Warnings ----------------------------------------------------------------------------------------------
class VdjalignError(Exception):
    """Base class for fatal errors raised by vdjalign."""


class VdjalignWarning(Warning): pass
class GeneExclusionWarning(VdjalignWarning): pass
class FeatureCorrectionWarning(VdjalignWarning): pass
class DeprecatedOptionWarning(VdjalignWarning): pass
