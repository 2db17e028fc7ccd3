"""L-shaped target detection, motion estimation and parameter files for laser-to-odometry calibration."""