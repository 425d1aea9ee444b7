"""
Django management command to generate license keys.

Keys are checked for uniqueness against stored licenses but not saved.
"""

import logging
import time
from pathlib import Path

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone

from core.domain.exceptions import KeyGenerationError
from licenses.application.services.license_cache_service import LicenseCacheService
from licenses.domain.license_key import (
    DEFAULT_FORMAT,
    CompactOptions,
    CustomOptions,
    KeyStrategy,
    SegmentedOptions,
    StandardOptions,
    validate_format,
)
from licenses.domain.services import LicenseKeyGenerator
from licenses.infrastructure.repositories.django_license_repository import DjangoLicenseRepository

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    """Command to generate unique license keys."""

    help = "Generate unique license keys using various strategies"

    def add_arguments(self, parser):
        """Add command arguments."""
        parser.add_argument("--count", type=int, default=1, help="Number of license keys to generate")
        parser.add_argument(
            "--strategy",
            default=KeyStrategy.STANDARD.value,
            help="Generation strategy (standard, compact, segmented, custom)",
        )
        parser.add_argument("--prefix", default="MEDI", help="License key prefix")
        parser.add_argument("--segment-length", type=int, default=4, help="Length of each segment")
        parser.add_argument("--segments", type=int, default=4, help="Number of segments")
        parser.add_argument("--length", type=int, default=12, help="Random length for compact strategy")
        parser.add_argument("--format", default=None, help="Format for segmented/custom strategies")
        parser.add_argument("--output", default=None, help="File path to save generated keys")
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Show what would be generated without generating",
        )
        parser.add_argument("--validate", action="store_true", help="Validate generated keys")

    def build_options(self, strategy: KeyStrategy, options: dict):
        """
        Build the options dataclass for a strategy from command options.

        Raises:
            KeyGenerationError: If the options are malformed
        """
        if strategy is KeyStrategy.STANDARD:
            return StandardOptions(options["prefix"], options["segment_length"], options["segments"])
        if strategy is KeyStrategy.COMPACT:
            return CompactOptions(options["prefix"], options["length"])
        if strategy is KeyStrategy.SEGMENTED:
            return SegmentedOptions(options["format"] or DEFAULT_FORMAT, options["segment_length"])
        return CustomOptions(options["format"] or "")

    def handle(self, *args, **options):
        """Execute the command."""
        count = options["count"]
        if count < 1:
            raise CommandError("--count must be at least 1")

        try:
            strategy = KeyStrategy.parse(options["strategy"])
            key_options = self.build_options(strategy, options)
        except KeyGenerationError as e:
            valid = ", ".join(s.value for s in KeyStrategy)
            raise CommandError(f"{e.message}. Valid strategies: {valid}") from e

        if options["dry_run"]:
            self.stdout.write(
                f"DRY RUN - Would generate {count} license key(s) with strategy: {strategy}"
            )
            self.stdout.write("Options:")
            for name, value in vars(key_options).items():
                self.stdout.write(f"  {name}: {value}")
            return

        self.stdout.write(f"Generating {count} license key(s) with strategy: {strategy}")
        cache_service = LicenseCacheService(DjangoLicenseRepository())
        generator = LicenseKeyGenerator(key_exists=cache_service.key_exists)

        started = time.monotonic()
        try:
            if count == 1:
                keys = [generator.generate(strategy, key_options)]
            else:
                keys = generator.generate_multiple(count, strategy, key_options)
        except KeyGenerationError as e:
            logger.error(
                "Failed to generate license keys via management command",
                extra={"count": count, "strategy": strategy.value, "error": e.message},
            )
            raise CommandError(f"Failed to generate license keys: {e.message}") from e
        duration = round(time.monotonic() - started, 2)

        # pylint: disable=no-member
        self.stdout.write(
            self.style.SUCCESS(f"Successfully generated {len(keys)} license key(s) in {duration} seconds")
        )
        self.stdout.write("-" * 50)
        for index, key in enumerate(keys, start=1):
            self.stdout.write(f"{index:3d}. {key}")
        self.stdout.write("-" * 50)

        if options["validate"]:
            self.validate_keys(keys, strategy, key_options)

        if options["output"]:
            self.save_to_file(keys, options["output"])

        logger.info(
            "License keys generated via management command",
            extra={"count": len(keys), "strategy": strategy.value, "duration": duration},
        )

    def validate_keys(self, keys, strategy, key_options):
        """Check every generated key against its strategy's format."""
        invalid = [key for key in keys if not validate_format(key, strategy, key_options)]
        # pylint: disable=no-member
        if not invalid:
            self.stdout.write(self.style.SUCCESS(f"All {len(keys)} keys are valid"))
            return
        self.stdout.write(
            self.style.WARNING(f"{len(keys) - len(invalid)} valid, {len(invalid)} invalid")
        )
        for key in invalid:
            self.stdout.write(self.style.ERROR(f"  Invalid: {key}"))

    def save_to_file(self, keys, output):
        """Write the keys to ``output`` with a short header."""
        lines = [
            "# Generated License Keys",
            f"# Generated at: {timezone.now():%Y-%m-%d %H:%M:%S}",
            f"# Count: {len(keys)}",
            "",
        ]
        lines.extend(f"{index}. {key}" for index, key in enumerate(keys, start=1))
        try:
            Path(output).write_text("\n".join(lines) + "\n", encoding="utf-8")
        except OSError as e:
            raise CommandError(f"Failed to save keys to file: {e}") from e
        # pylint: disable=no-member
        self.stdout.write(self.style.SUCCESS(f"License keys saved to: {output}"))
