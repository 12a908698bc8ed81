"""VPA — обратный расчёт численности и промысловой смертности по уловам.

- run_vpa: приближение Поупа, от терминального года назад
- resolve_plus_group: распределение plus group между двумя старшими возрастами
"""

from .backward import (
    PlusGroupSplit,
    VPAConfig,
    VPAInputs,
    apply_plus_group_f,
    reconstruct_terminal_year,
    reconstruct_year,
    resolve_plus_group,
    run_vpa,
)

__all__ = [
    "PlusGroupSplit",
    "VPAConfig",
    "VPAInputs",
    "apply_plus_group_f",
    "reconstruct_terminal_year",
    "reconstruct_year",
    "resolve_plus_group",
    "run_vpa",
]
