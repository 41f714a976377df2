"""
report.py - Collect per-image results and lay them out as tables

Results are kept as an ordered list of (file name, TransductionResult) and
exposed as pandas DataFrames. Writing the tables to disk (CSV, XLSX, ...) is
left to the caller.

Usage:
    report = ColocalizationReport(params)
    report.add_result("slice_01.tif", result)
    print(report.format_summary_table())
    report.analysis_table()   # one row per transduced cell
"""

from typing import List, Tuple

from simplecoloc import __version__
from simplecoloc.config import PLUGIN_NAME, TransductionParameters
from simplecoloc.core.transduction import TransductionResult, summary_statistics

SUMMARY_COLUMNS = [
    "File Name",
    "Number of Cells",
    "Number of Transduced Cells",
    "Transduction Efficiency (%)",
    "Number of Three-Channel Cells",
    "Average Morphology Area (pixel^2)",
    "Mean Fluorescence Intensity (a.u.)",
    "Median Fluorescence Intensity (a.u.)",
    "Min Fluorescence Intensity (a.u.)",
    "Max Fluorescence Intensity (a.u.)",
    "RawIntDen",
]

ANALYSIS_COLUMNS = [
    "File Name",
    "Transduced Cell",
    "Morphology Area (pixel^2)",
    "Mean Fluorescence Intensity (a.u.)",
    "Median Fluorescence Intensity (a.u.)",
    "Min Fluorescence Intensity (a.u.)",
    "Max Fluorescence Intensity (a.u.)",
    "RawIntDen",
]

PARAMETER_COLUMNS = [
    "File Name",
    "Plugin",
    "Version",
    "Target channel",
    "Transduced channel",
    "All cells channel",
    "Cell diameter range (px)",
    "All cells diameter range (px)",
    "Intensity percentage",
    "Subset threshold",
    "Pixel threshold",
]

DOCUMENTATION_COLUMNS = ["Abbreviation", "Description"]

DOCUMENTATION_ROWS = [
    ["Summary", "Key measurements per image"],
    ["Transduced cells analysis", "Per-cell metrics of transduced cells"],
    ["Parameters", f"Parameters used to run {PLUGIN_NAME} {__version__}"],
]

COUNT_COLUMNS = ["File Name", "Cell Count"]


class ColocalizationReport:
    """Ordered (file name, result) pairs for one batch of images."""

    def __init__(self, parameters: TransductionParameters):
        self.parameters = parameters
        self._results: List[Tuple[str, TransductionResult]] = []

    def add_result(self, file_name: str, result: TransductionResult):
        self._results.append((file_name, result))

    @property
    def results(self) -> List[Tuple[str, TransductionResult]]:
        return list(self._results)

    def __len__(self):
        return len(self._results)

    def summary_table(self):
        """One row per image."""
        import pandas as pd

        rows = []
        for file_name, result in self._results:
            s = summary_statistics(result)
            rows.append([
                file_name,
                s['target_cells'],
                s['transduced_cells'],
                s['transduction_efficiency'],
                s['three_channel_cells'],
                s['average_area'],
                s['mean_intensity'],
                s['median_intensity'],
                s['min_intensity'],
                s['max_intensity'],
                s['raw_int_den'],
            ])
        return pd.DataFrame(rows, columns=SUMMARY_COLUMNS)

    def analysis_table(self):
        """One row per transduced cell overlapping a target cell."""
        import pandas as pd

        rows = []
        for file_name, result in self._results:
            for i, cell in enumerate(result.overlapping_transduced_intensity_analysis, 1):
                rows.append([
                    file_name, i, cell.area, cell.mean, cell.median,
                    cell.min, cell.max, cell.raw_int_den,
                ])
        return pd.DataFrame(rows, columns=ANALYSIS_COLUMNS)

    def parameters_table(self):
        """Parameters used, repeated per image."""
        import pandas as pd

        p = self.parameters
        rows = [
            [file_name, PLUGIN_NAME, __version__, p.target_channel, p.transduced_channel,
             p.all_cells_channel, str(p.cell_diameter), str(p.all_cells_diameter),
             p.intensity_percentage, p.subset_threshold, p.pixel_threshold]
            for file_name, _ in self._results
        ]
        return pd.DataFrame(rows, columns=PARAMETER_COLUMNS)

    def documentation_table(self):
        """What each of the other tables holds."""
        import pandas as pd

        return pd.DataFrame(DOCUMENTATION_ROWS, columns=DOCUMENTATION_COLUMNS)

    def format_summary_table(self) -> str:
        """Format the per-image summary as an ASCII table string."""
        lines = []
        header = (f"{'File':<28} {'Cells':>6} {'Transd':>6} {'Eff.':>7} "
                  f"{'3-ch':>6} {'Mean int.':>10}")
        lines.append(header)
        lines.append('-' * len(header))
        for file_name, result in self._results:
            s = summary_statistics(result)
            three = s['three_channel_cells']
            three_str = str(three) if three is not None else "-"
            eff_str = f"{s['transduction_efficiency']:.1f}%" if s['target_cells'] > 0 else "N/A"
            lines.append(
                f"{file_name[:28]:<28} {s['target_cells']:>6} "
                f"{s['transduced_cells']:>6} {eff_str:>7} "
                f"{three_str:>6} {s['mean_intensity']:>10.1f}"
            )
        return '\n'.join(lines)


def count_table(counts: List[Tuple[str, int]]):
    """One row per image for a count-only run."""
    import pandas as pd

    return pd.DataFrame(list(counts), columns=COUNT_COLUMNS)


def format_count_table(counts: List[Tuple[str, int]]) -> str:
    """Format (file name, cell count) pairs as an ASCII table string."""
    lines = [f"{'File':<28} {'Cells':>6}"]
    lines.append('-' * len(lines[0]))
    for file_name, n_cells in counts:
        lines.append(f"{file_name[:28]:<28} {n_cells:>6}")
    return '\n'.join(lines)
