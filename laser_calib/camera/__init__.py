"""Laser-to-camera extrinsic calibration with a chessboard target."""