"""
FV_Libs - Floor Visualizer Library Modules

This package contains core functionality for the Floor Visualizer project,
organized into specialized sub-packages:

- ImageEditingLib: Bitmap/Mask models, texture compositing and bitmap I/O
- MaskingLib: Display-to-native coordinate mapping and polygon mask capture
- JobDispatchLib: Background compositing jobs with correlated replies
- RemoteLib: Remote floor detection and texture resource loading
"""

__version__ = "0.1.0"
