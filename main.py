"""
Victory Guard - Main Entry Point
Launch the camera preview with victory sign emergency detection

Usage: python main.py [--mode auto|mediapipe|cv] [--sensitivity low|medium|high]
"""
import sys

from victory_guard.cli import main

if __name__ == "__main__":
    sys.exit(main())
