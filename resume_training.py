"""
Resume training from a saved weight file
This is a convenience script to quickly resume training
"""

import glob
import os
import sys
from typing import Optional

from train_ntuple import main


def find_latest_weights(weights_dir: str = 'weights') -> Optional[str]:
    """Find the most recently written weight file."""
    candidates = glob.glob(os.path.join(weights_dir, '*.bin'))

    if not candidates:
        print(f"No weight files found in {weights_dir}/")
        return None

    return max(candidates, key=os.path.getmtime)


def resume_training(weights_path: Optional[str] = None, total: int = 1000,
                    alpha: float = 0.00125, extra: str = '') -> int:
    """
    Resume training from a weight file, saving back to the same file.

    Args:
        weights_path: Path to a specific weight file, or None to use the latest
        total: Number of episodes to play
        alpha: TD step size (each of the 8 patterns of an orbit gets alpha / 8)
        extra: Additional player options, e.g. "tc_mode=1 depth=1"
    """
    if weights_path is None:
        weights_path = find_latest_weights()

        if weights_path is None:
            print("No weight file found. Starting fresh training...")
            weights_path = os.path.join('weights', 'ntuple.bin')
            play = f"alpha={alpha} save={weights_path} {extra}"
            return main(['--total', str(total), '--play', play])

    if not os.path.exists(weights_path):
        print(f"Error: Weight file not found at {weights_path}")
        print("Available weight files:")
        for path in sorted(glob.glob('weights/*.bin')):
            print(f"  - {path}")
        return 1

    print(f"\nResuming training from: {weights_path}")
    play = f"alpha={alpha} load={weights_path} save={weights_path} {extra}"
    return main(['--total', str(total), '--play', play])


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description='Resume 2048 n-tuple training')
    parser.add_argument('--weights', type=str, default=None,
                        help='Path to a specific weight file (default: use latest)')
    parser.add_argument('--total', type=int, default=1000,
                        help='Number of episodes to play')
    parser.add_argument('--alpha', type=float, default=0.00125,
                        help='TD step size, split over the 8 patterns of an orbit (default: 0.00125)')
    parser.add_argument('--play', type=str, default='',
                        help='Extra player options')
    parser.add_argument('--list', action='store_true',
                        help='List available weight files')

    args = parser.parse_args()

    if args.list:
        print("\nAvailable weight files:")
        paths = glob.glob('weights/*.bin')
        if paths:
            for path in sorted(paths):
                size_mb = os.path.getsize(path) / (1024 * 1024)
                print(f"  - {path} ({size_mb:.2f} MB)")
        else:
            print("  No weight files found in weights/")
    else:
        sys.exit(resume_training(args.weights, args.total, args.alpha, args.play))
