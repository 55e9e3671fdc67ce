#!/usr/bin/env python3
"""
Polarization Stream Processing Engine - Environment Verification Script

Validates:
- NumPy real FFT
- SciPy Butterworth design
- Pydantic/YAML configuration round trip
- UDP ingest port availability
- System specifications
"""

import platform
import socket
import sys
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple


@dataclass
class VerificationResult:
    """Result of a single verification check."""
    name: str
    passed: bool
    message: str
    details: Optional[str] = None


class EnvironmentVerifier:
    """Verifies PolStream environment components."""

    def __init__(self, stokes_port: int = 5000):
        self.stokes_port = stokes_port
        self.results: list[VerificationResult] = []

    def check_numpy_fft(self) -> VerificationResult:
        """Check that a Hann-windowed rfft finds a known tone."""
        try:
            import numpy as np

            n = 256
            x = np.sin(2 * np.pi * 32 * np.arange(n) / n)
            power = np.abs(np.fft.rfft(x * np.hanning(n))) ** 2
            peak = int(np.argmax(power))

            return VerificationResult(
                name="NumPy FFT",
                passed=peak == 32,
                message=f"Peak at bin {peak}" if peak == 32 else f"Expected bin 32, got {peak}",
                details=f"NumPy {np.__version__}"
            )
        except Exception as e:
            return VerificationResult(
                name="NumPy FFT",
                passed=False,
                message=f"Failed: {str(e)}"
            )

    def check_scipy_butter(self) -> VerificationResult:
        """Design the default 4th order highpass and check it is stable."""
        try:
            import numpy as np
            import scipy
            from scipy import signal

            b, a = signal.butter(4, 20.0 / (1525.88 / 2), btype="highpass")
            stable = bool(np.all(np.abs(np.roots(a)) < 1.0))

            return VerificationResult(
                name="SciPy Butterworth",
                passed=stable and len(b) == 5,
                message="Stable 4th order highpass" if stable else "Unstable design",
                details=f"SciPy {scipy.__version__}"
            )
        except Exception as e:
            return VerificationResult(
                name="SciPy Butterworth",
                passed=False,
                message=f"Failed: {str(e)}"
            )

    def check_config(self) -> VerificationResult:
        """Round-trip the default configuration through YAML."""
        try:
            from polstream.config import PolStreamConfig

            config = PolStreamConfig()
            with tempfile.TemporaryDirectory() as tmp:
                path = Path(tmp) / "config.yaml"
                config.to_yaml(str(path))
                loaded = PolStreamConfig.from_yaml(str(path))

            return VerificationResult(
                name="Configuration",
                passed=loaded == config,
                message="YAML round trip OK" if loaded == config else "YAML round trip mismatch"
            )
        except Exception as e:
            return VerificationResult(
                name="Configuration",
                passed=False,
                message=f"Failed: {str(e)}"
            )

    def check_udp_port(self) -> VerificationResult:
        """Check the Stokes ingest port can be bound."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind(("0.0.0.0", self.stokes_port))
            return VerificationResult(
                name="UDP Ingest Port",
                passed=True,
                message=f"Port {self.stokes_port} available"
            )
        except OSError as e:
            return VerificationResult(
                name="UDP Ingest Port",
                passed=False,
                message=f"Port {self.stokes_port} unavailable: {e}"
            )
        finally:
            sock.close()

    def get_system_specs(self) -> dict:
        """Gather basic system specifications."""
        specs = {
            'platform': platform.platform(),
            'python_version': platform.python_version(),
        }
        try:
            import os
            specs['cpu_cores'] = os.cpu_count()
        except Exception as e:
            specs['error'] = str(e)
        return specs

    def run_all_checks(self) -> Tuple[bool, list[VerificationResult]]:
        """Run all verification checks."""
        checks = [
            self.check_numpy_fft,
            self.check_scipy_butter,
            self.check_config,
            self.check_udp_port,
        ]

        results = [check() for check in checks]
        all_passed = all(r.passed for r in results)
        return all_passed, results

    def print_results(self, results: list[VerificationResult], specs: dict):
        """Print formatted verification results."""
        print("")
        print("=" * 60)
        print("  Polarization Stream Engine - Environment Verification")
        print("=" * 60)
        print("")

        print("System Specifications:")
        print("-" * 40)
        for name, value in [
            ('Platform', specs.get('platform', 'Unknown')),
            ('Python', specs.get('python_version', 'Unknown')),
            ('CPU Cores', specs.get('cpu_cores', 'Unknown')),
        ]:
            print(f"  {name:<15} {value}")

        print("")
        print("Verification Results:")
        print("-" * 40)

        for result in results:
            status = "[PASS]" if result.passed else "[FAIL]"
            color_status = f"\033[92m{status}\033[0m" if result.passed else f"\033[91m{status}\033[0m"
            print(f"  {color_status} {result.name:<20} {result.message}")
            if result.details:
                print(f"         {result.details}")

        print("")
        print("-" * 40)

        passed_count = sum(1 for r in results if r.passed)
        total_count = len(results)

        if passed_count == total_count:
            print(f"\033[92m  All {total_count} checks passed!\033[0m")
        else:
            print(f"\033[91m  {passed_count}/{total_count} checks passed.\033[0m")
            print("  Please resolve failed checks before proceeding.")

        print("")
        print("=" * 60)


def main():
    verifier = EnvironmentVerifier()
    specs = verifier.get_system_specs()
    all_passed, results = verifier.run_all_checks()
    verifier.print_results(results, specs)
    sys.exit(0 if all_passed else 1)


if __name__ == "__main__":
    main()
