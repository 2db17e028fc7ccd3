"""Parameter input and extrinsic output files for the laser-to-odometry calibration."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from laser_calib.filestorage import ParameterError, read_opencv_yaml, write_opencv_yaml

DEFAULT_INPUT_FILE = "parameters_input.yaml"
DEFAULT_OUTPUT_FILE = "extrinsic.yaml"


@dataclass
class LaserProcessParameters:
    """Line-detection settings read from the input file."""

    max_dist_seen_as_continuous: float
    line_length_tolerance: float
    ransac_fitline_dist_th: float
    ransac_max_iterations: int
    min_point_num_stop_ransac: int
    min_proportion_stop_ransac: float


def _number(document: dict, key: str) -> float:
    value = document.get(key)
    if value is None:
        return 0.0
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ParameterError(f"{key!r} is not a number")
    return float(value)


def _integer(document: dict, key: str) -> int:
    return int(round(_number(document, key)))


class ParametersIO:
    """Reads calibration settings and writes the solved extrinsic.

    Missing numeric entries read as zero.
    """

    def __init__(self, input_file_name=DEFAULT_INPUT_FILE,
                 output_file_name=DEFAULT_OUTPUT_FILE) -> None:
        self.input_file_name = str(input_file_name)
        self.output_file_name = str(output_file_name)

    def _read(self) -> dict:
        return read_opencv_yaml(self.input_file_name)

    def get_env_parameters(self) -> tuple[float, float]:
        """Return the target's long and short edge lengths."""
        document = self._read()
        return _number(document, "long_edge_length"), _number(document, "short_edge_length")

    def get_laser_process_parameters(self) -> LaserProcessParameters:
        """Return the line-detection settings."""
        document = self._read()
        return LaserProcessParameters(
            max_dist_seen_as_continuous=_number(document, "max_dist_seen_as_continuous"),
            line_length_tolerance=_number(document, "line_length_tolerance"),
            ransac_fitline_dist_th=_number(document, "ransac_fitline_dist_th"),
            ransac_max_iterations=_integer(document, "ransac_max_iterations"),
            min_point_num_stop_ransac=_integer(document, "min_point_num_stop_ransac"),
            min_proportion_stop_ransac=_number(document, "min_proportion_stop_ransac"),
        )

    def get_solver_parameters(self) -> float:
        """Return the accepted travel difference between laser and odometry."""
        return _number(self._read(), "diff_tolerance_laser_odom")

    def save_extrinsic_parameters(self, rotation_l2o, translation_l2o) -> None:
        """Write the laser-to-odometry rotation and translation to the output file."""
        rotation = np.asarray(rotation_l2o, dtype=float).reshape(2, 2)
        translation = np.asarray(translation_l2o, dtype=float).reshape(2, 1)
        write_opencv_yaml(self.output_file_name,
                          {"rotation_l2o": rotation, "translation_l2o": translation})