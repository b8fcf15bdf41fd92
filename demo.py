#!/usr/bin/env python3
"""
Face Registry Demo

Shows the registry and matcher working on synthetic 128-d embeddings, so no
camera, image or face model is needed.
"""

import sys

import numpy as np

from face_registry.config import get_default_config


def create_demo_config():
    """Create an in-memory configuration for the demo."""
    config = get_default_config()
    config['storage']['backend'] = 'memory'
    return config


def demo_face_registry():
    """Demonstrate enrolment, matching, editing and deletion."""
    print("Face Registry Demo")
    print("=" * 40)

    try:
        from face_registry.recognizer import FaceRecognizer

        recognizer = FaceRecognizer(create_demo_config())
        registry = recognizer.registry
        print("✓ Face recognizer initialized")

        rng = np.random.default_rng(7)
        people = {
            'Alice': rng.normal(scale=0.1, size=128),
            'Bob': rng.normal(scale=0.1, size=128),
        }
        registry.add('Alice', people['Alice'], '1990-03-15', 'female')
        registry.add('Bob', people['Bob'])
        print(f"✓ Enrolled {len(registry)} people")

        print("\nMatching probes...")
        probes = {
            'Alice (noisy)': people['Alice'] + rng.normal(scale=0.01, size=128),
            'Stranger': rng.normal(scale=0.1, size=128),
        }
        for label, probe in probes.items():
            result = recognizer.match(probe)
            print(f"- {label}: {result.name} (distance {result.distance:.3f})")

        print("\nRenaming Bob to Robert...")
        registry.update_at(1, 'Robert', '1985-11-02', 'male')
        print(f"- Bob's embedding now matches: {recognizer.match(people['Bob']).name}")

        print(f"\nEnrolled people: {len(registry)}")
        for person in recognizer.list_people():
            age = person['age'] if person['age'] is not None else '?'
            print(f"- [{person['index']}] {person['name']}, age {age}")

        registry.delete_at(0)
        print(f"\nAfter deleting Alice: {recognizer.match(people['Alice']).name}")

        print("\n✓ Demo completed successfully!")

    except ImportError as e:
        print(f"✗ Import error: {e}")
        print("\nTo run this demo, install the package first:")
        print("pip install -e .")


def show_usage():
    """Show how to use the command line."""
    print("\nFace Registry Usage:")
    print("=" * 40)
    print("\n1. Install:")
    print("   pip install -e '.[detection]'")
    print("\n2. Enroll people:")
    print("   python main.py add 'Jane Smith' --image jane.jpg --dob 1990-05-15")
    print("   python main.py add 'John Doe' --embedding john.npy")
    print("\n3. Recognize:")
    print("   python main.py recognize group_photo.jpg")
    print("   python main.py match probe.json --threshold 0.5")
    print("\n4. Manage:")
    print("   python main.py list")
    print("   python main.py edit 0 'Jane Doe' --gender female")
    print("   python main.py delete <id> --by-id")
    print("   python main.py clear --yes")
    print("\n5. Configuration:")
    print("   Edit config/config.yaml to customize behavior")


if __name__ == '__main__':
    if len(sys.argv) > 1 and sys.argv[1] == '--usage':
        show_usage()
    else:
        demo_face_registry()
