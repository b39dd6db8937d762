#!/usr/bin/env python3
"""
Development tasks for sqldatatables.

    python dev_tasks.py test
    python dev_tasks.py all
"""

import os
import shutil
import subprocess
import sys

PACKAGE = "sqldatatables"


def run_command(command, check=True):
    print(f"Running: {command}")
    result = subprocess.run(command, shell=True, check=check)
    return result.returncode == 0


def clean():
    print("Cleaning build artifacts...")
    for path in ["build", "dist", ".pytest_cache", "htmlcov", ".coverage"]:
        if os.path.isdir(path):
            shutil.rmtree(path, ignore_errors=True)
        elif os.path.exists(path):
            os.remove(path)
    for name in os.listdir("."):
        if name.endswith(".egg-info"):
            shutil.rmtree(name, ignore_errors=True)
    for root, dirs, _ in os.walk("."):
        if "__pycache__" in dirs:
            shutil.rmtree(os.path.join(root, "__pycache__"), ignore_errors=True)
    print("Clean completed.")


def format_code():
    print("Formatting code...")
    run_command(f"black {PACKAGE} tests")
    run_command(f"isort {PACKAGE} tests")


def lint():
    print("Running linting...")
    ok = run_command(f"mypy {PACKAGE}", check=False)
    ok = run_command(f"flake8 {PACKAGE} tests", check=False) and ok
    if not ok:
        print("Linting failed.")
        sys.exit(1)
    print("Linting passed.")


def test():
    # SQLDATATABLES_TEST_DATABASE_URL (or .env) switches the suite to an external database
    run_command(f"pytest tests/ -v --cov={PACKAGE} --cov-report=term")


def build():
    print("Building package...")
    clean()
    run_command("python -m build")
    run_command("python -m twine check dist/*")


def install_dev():
    run_command("pip install -e .[dev,test]")


def main():
    commands = {
        "clean": clean,
        "format": format_code,
        "lint": lint,
        "test": test,
        "build": build,
        "install-dev": install_dev,
        "all": lambda: (format_code(), lint(), test(), build()),
    }
    if len(sys.argv) < 2 or sys.argv[1] not in commands:
        print("Usage: python dev_tasks.py <command>")
        print(f"Commands: {', '.join(commands)}")
        sys.exit(1)
    commands[sys.argv[1]]()


if __name__ == "__main__":
    main()
