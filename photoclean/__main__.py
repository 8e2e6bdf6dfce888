"""
Allow running the package with: python -m photoclean

By default, runs the command-line analysis. Use 'server' for the JSON API.

Examples:
    python -m photoclean /path/to/photos        # Analyse a folder
    python -m photoclean cli /path/to/photos    # Same, explicit
    python -m photoclean server --port 5000     # Start the API server
    python -m photoclean config --init          # Create example config file
"""

import sys


def _show_config(init: bool) -> int:
    from .pipeline import has_heif_support
    from .user_config import get_user_config

    config = get_user_config()

    if init:
        if config.create_example_config():
            print("✓ Created example configuration file at:")
            print(f"  {config.config_file_path}")
            print("\nEdit this file to customize PhotoClean settings.")
            return 0
        print("✗ Failed to create configuration file.")
        return 1

    print(f"Configuration file: {config.config_file_path}")
    if config.config_file_path.exists():
        print("Status: ✓ Found")
    else:
        print("Status: ✗ Not found (using defaults)")
        print("\nRun 'python -m photoclean config --init' to create one.")

    print("\nCurrent settings:")
    print(f"  default_threshold: {config.default_threshold}")
    print(f"  default_workers: {config.default_workers}")
    print(f"  cancellation_check_interval: {config.cancellation_check_interval}")
    print(f"  max_image_pixels: {config.max_image_pixels:,}")
    print(f"  hash_mode: {config.hash_mode}")

    print(f"\nHEIF support: {'enabled' if has_heif_support() else 'disabled (pip install pillow-heif)'}")
    return 0


def main(argv=None) -> int:
    args = list(sys.argv[1:] if argv is None else argv)
    command = args[0] if args else None

    if command == 'server':
        from .app import main as server_main
        server_main(args[1:])
        return 0
    if command == 'config':
        return _show_config('--init' in args or '-i' in args)

    if command == 'cli':
        args = args[1:]
    from .cli import main as cli_main
    return cli_main(args)


if __name__ == '__main__':
    sys.exit(main())
