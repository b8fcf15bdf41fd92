"""
Command Line Module

Manage the known-face registry and run recognition on images from the
command line.
"""

import argparse
import json
import logging
import sys
from typing import Any, Dict, List, Optional

import numpy as np

from .age import calculate_age
from .config import DEFAULT_CONFIG_PATH, load_config
from .errors import FaceRegistryError
from .face_analyzer import load_image
from .recognizer import FaceRecognizer
from .validators import sanitize_name, validate_dob, validate_gender, validate_name

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(config: Dict[str, Any], verbose: bool = False):
    """Configure root logging from the ``logging`` config section."""
    log_config = config.get('logging', {})
    level = logging.DEBUG if verbose else getattr(
        logging, str(log_config.get('level', 'INFO')).upper(), logging.INFO)

    handlers: List[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    if log_config.get('file'):
        handlers.append(logging.FileHandler(log_config['file']))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def load_embedding(path: str) -> List[float]:
    """
    Read an embedding from a ``.npy`` file or a JSON array.

    Raises:
        ValueError: If the file does not hold a flat numeric vector
    """
    if path.endswith('.npy'):
        values = np.load(path)
    else:
        with open(path, 'r') as f:
            values = np.asarray(json.load(f), dtype=np.float64)

    if values.ndim != 1 or values.size == 0:
        raise ValueError(f"Expected a non-empty 1-d embedding in {path}")
    return [float(v) for v in values]


def _print_json(data: Any):
    print(json.dumps(data, indent=2, default=str))


def _check_person_fields(name: str, dob: Optional[str], gender: Optional[str]) -> Optional[str]:
    """Return the first validation error for the given fields, if any."""
    checks = [validate_name(name)]
    if dob:
        checks.append(validate_dob(dob))
    checks.append(validate_gender(gender))

    for check in checks:
        if not check.valid:
            return check.error
    return None


def _resolve_index(recognizer: FaceRecognizer, target: str, by_id: bool) -> Optional[int]:
    if by_id:
        return recognizer.registry.index_of(target)
    try:
        return int(target)
    except ValueError:
        return None


# Commands

def cmd_list(recognizer: FaceRecognizer, args) -> int:
    people = recognizer.list_people()
    if args.json:
        _print_json(people)
        return 0

    print(f"Enrolled people ({len(people)}):")
    for person in people:
        details = []
        if person['age'] is not None:
            details.append(f"age {person['age']}")
        if person['gender']:
            details.append(person['gender'])
        suffix = f" ({', '.join(details)})" if details else ''
        print(f"  [{person['index']}] {person['name']}{suffix}  id={person['id']}")
    return 0


def cmd_add(recognizer: FaceRecognizer, args) -> int:
    name = sanitize_name(args.name)
    gender = args.gender.lower() if args.gender else None
    error = _check_person_fields(name, args.dob, gender)
    if error:
        print(f"Invalid input: {error}")
        return 1

    if args.embedding:
        try:
            embedding = load_embedding(args.embedding)
        except (OSError, ValueError) as e:
            print(f"Failed to read embedding: {e}")
            return 1
        face = recognizer.registry.add(name, embedding, args.dob, gender)
        print(f"Enrolled {name} with id {face.id}")
        return 0

    image = load_image(args.image)
    if image is None:
        print(f"Failed to load image: {args.image}")
        return 1

    result = recognizer.enroll_from_image(image, name, args.dob, gender)
    if not result['success']:
        print(f"Enrollment failed: {result['error']}")
        return 1

    if result['similar_match']:
        print(f"Note: looks like already enrolled '{result['similar_match']['name']}'")
    print(f"Enrolled {name} with id {result['face_id']}")
    return 0


def cmd_edit(recognizer: FaceRecognizer, args) -> int:
    name = sanitize_name(args.name)
    gender = args.gender.lower() if args.gender else None
    error = _check_person_fields(name, args.dob, gender)
    if error:
        print(f"Invalid input: {error}")
        return 1

    index = _resolve_index(recognizer, args.target, args.by_id)
    if index is None or not recognizer.registry.update_at(index, name, args.dob, gender):
        print(f"No enrolled person at {args.target}")
        return 1

    print(f"Updated [{index}] {name}")
    return 0


def cmd_delete(recognizer: FaceRecognizer, args) -> int:
    index = _resolve_index(recognizer, args.target, args.by_id)
    if index is None or not recognizer.registry.delete_at(index):
        print(f"No enrolled person at {args.target}")
        return 1

    print(f"Deleted [{index}]")
    return 0


def cmd_clear(recognizer: FaceRecognizer, args) -> int:
    if not args.yes:
        print("Refusing to clear the registry without --yes")
        return 1
    recognizer.registry.clear()
    print("All enrolled people cleared")
    return 0


def cmd_match(recognizer: FaceRecognizer, args) -> int:
    try:
        probe = load_embedding(args.embedding)
    except (OSError, ValueError) as e:
        print(f"Failed to read embedding: {e}")
        return 1

    result = recognizer.match(probe, args.threshold)
    _print_json(result.to_dict())
    return 0


def cmd_recognize(recognizer: FaceRecognizer, args) -> int:
    image = load_image(args.image)
    if image is None:
        print(f"Failed to load image: {args.image}")
        return 1

    if args.threshold is not None:
        recognizer.matcher.threshold = args.threshold

    _print_json(recognizer.recognize_image(image))
    return 0


def cmd_age(recognizer: FaceRecognizer, args) -> int:
    print(calculate_age(args.dob))
    return 0


def cmd_stats(recognizer: FaceRecognizer, args) -> int:
    _print_json(recognizer.get_recognition_statistics())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Known-face registry and recognition')
    parser.add_argument('--config', '-c', default=DEFAULT_CONFIG_PATH,
                        help='Configuration file path')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')

    subparsers = parser.add_subparsers(dest='command', required=True)

    p = subparsers.add_parser('list', help='List enrolled people')
    p.add_argument('--json', action='store_true', help='Print as JSON')
    p.set_defaults(func=cmd_list)

    p = subparsers.add_parser('add', help='Enroll a person')
    p.add_argument('name', help='Full name')
    source = p.add_mutually_exclusive_group(required=True)
    source.add_argument('--image', help='Image containing the face')
    source.add_argument('--embedding', help='Embedding file (.npy or JSON array)')
    p.add_argument('--dob', help='Date of birth (YYYY-MM-DD)')
    p.add_argument('--gender', help='male, female or other')
    p.set_defaults(func=cmd_add)

    p = subparsers.add_parser('edit', help="Replace a person's details",
                               description='Replace name, date of birth and gender. '
                                           'Omitted --dob or --gender values are cleared.')
    p.add_argument('target', help='Registry index (or id with --by-id)')
    p.add_argument('name', help='New full name')
    p.add_argument('--dob', help='Date of birth (YYYY-MM-DD); cleared when omitted')
    p.add_argument('--gender', help='male, female or other; cleared when omitted')
    p.add_argument('--by-id', action='store_true', help='Treat target as a stable id')
    p.set_defaults(func=cmd_edit)

    p = subparsers.add_parser('delete', help='Remove a person')
    p.add_argument('target', help='Registry index (or id with --by-id)')
    p.add_argument('--by-id', action='store_true', help='Treat target as a stable id')
    p.set_defaults(func=cmd_delete)

    p = subparsers.add_parser('clear', help='Remove every enrolled person')
    p.add_argument('--yes', action='store_true', help='Confirm clearing')
    p.set_defaults(func=cmd_clear)

    p = subparsers.add_parser('match', help='Match an embedding file')
    p.add_argument('embedding', help='Embedding file (.npy or JSON array)')
    p.add_argument('--threshold', '-t', type=float, help='Distance threshold')
    p.set_defaults(func=cmd_match)

    p = subparsers.add_parser('recognize', help='Recognize faces in an image')
    p.add_argument('image', help='Image file')
    p.add_argument('--threshold', '-t', type=float, help='Distance threshold')
    p.set_defaults(func=cmd_recognize)

    p = subparsers.add_parser('age', help='Age for a date of birth')
    p.add_argument('dob', help='Date of birth (YYYY-MM-DD)')
    p.set_defaults(func=cmd_age)

    p = subparsers.add_parser('stats', help='Show registry statistics')
    p.set_defaults(func=cmd_stats)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    config = load_config(args.config)
    setup_logging(config, args.verbose)

    try:
        recognizer = FaceRecognizer(config)
        return args.func(recognizer, args)
    except FaceRegistryError as e:
        logger.error(f"Registry error: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
