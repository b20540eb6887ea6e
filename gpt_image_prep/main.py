import argparse
from pathlib import Path

from gpt_image_prep.__version__ import __version__
from gpt_image_prep.logging import LoggerFactory, operation_context, setup_logging
from gpt_image_prep.storage import image
from gpt_image_prep.storage.exceptions import ImageError
from gpt_image_prep.storage.gpt import (
    get_gpt_partition_information,
    plan_snapshot_shrink,
    read_partition_table,
)


def build_parser():
    parser = argparse.ArgumentParser(
        prog="gpt-image-prep",
        description="Create, shrink and repair GPT disk images for redistribution",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-d", "--debug", action="store_true", help="Enable verbose debug output")
    parser.add_argument("--trace", action="store_true", help="Also log captured tool output")
    parser.add_argument("--log-dir", type=Path, default=None, help="Directory for log files")
    subparsers = parser.add_subparsers(dest="command", required=True)

    create = subparsers.add_parser("create", help="Create a blank raw output image")
    create.add_argument("image", type=Path)
    create.add_argument("--size", default=None, help="Image size, e.g. 30G")

    inspect = subparsers.add_parser("inspect", help="Show partitions and the planned size")
    inspect.add_argument("image", type=Path)

    partition = subparsers.add_parser("partition", help="Show one partition's geometry")
    partition.add_argument("image", type=Path)
    partition.add_argument("partition_id", type=int)

    shrink = subparsers.add_parser("shrink", help="Trim trailing free space")
    shrink.add_argument("image", type=Path)
    shrink.add_argument(
        "--no-repair",
        action="store_true",
        help="Leave the secondary GPT invalid (run 'repair' later)",
    )

    repair = subparsers.add_parser("repair", help="Rebuild the secondary GPT")
    repair.add_argument("image", type=Path)

    validate = subparsers.add_parser("validate", help="Check GPT integrity and image size")
    validate.add_argument("image", type=Path)

    prepare = subparsers.add_parser(
        "prepare", help="Shrink, repair and validate an installed image"
    )
    prepare.add_argument("image", type=Path)
    return parser


def _print_inspection(image_path):
    snapshot = read_partition_table(image_path)
    target = plan_snapshot_shrink(snapshot)
    print(f"Image:            {image_path}")
    print(f"Sector size:      {snapshot.sector_size}")
    print(f"Partitions:       {snapshot.partition_count}")
    for record in snapshot.records:
        print(f"  {record.index:>3}  {record.start_sector:>12}  {record.end_sector:>12}")
    print(f"Last sector:      {target.last_sector}")
    print(f"Planned size:     {target.new_disk_size_bytes} bytes")


def _print_partition(image_path, partition_id):
    info = get_gpt_partition_information(image_path, partition_id)
    print(f"Sector size:      {info.sector_size}")
    print(f"First sector:     {info.first_sector}")
    print(f"Last sector:      {info.last_sector}")
    print(f"Partition size:   {info.partition_sectors} sectors")


def _print_validation(image_path):
    report = image.validate_image(image_path)
    print(f"GPT valid:        {'yes' if report.gpt_valid else 'no'}")
    print(f"Image size:       {report.image_size_bytes} bytes")
    print(f"Shrink limit:     {report.size_limit_bytes} bytes")
    return report.ok


def run(args):
    """Dispatch a parsed command; returns the process exit status."""
    if args.command == "create":
        with operation_context("create", image=str(args.image)):
            image.create_output_image(args.image, size=args.size)
    elif args.command == "inspect":
        _print_inspection(args.image)
    elif args.command == "partition":
        _print_partition(args.image, args.partition_id)
    elif args.command == "shrink":
        with operation_context("shrink", image=str(args.image)):
            image.prepare_image(args.image, repair=not args.no_repair, validate=False)
    elif args.command == "repair":
        with operation_context("repair", image=str(args.image)):
            image.repair_secondary_gpt(args.image)
    elif args.command == "validate":
        return 0 if _print_validation(args.image) else 1
    elif args.command == "prepare":
        with operation_context("prepare", image=str(args.image)):
            image.prepare_image(args.image)
    return 0


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(debug=args.debug, trace=args.trace, log_dir=args.log_dir)
    log = LoggerFactory.for_system()
    log.debug(f"gpt-image-prep {__version__} running '{args.command}'")
    try:
        return run(args)
    except ImageError as error:
        log.error(str(error))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
