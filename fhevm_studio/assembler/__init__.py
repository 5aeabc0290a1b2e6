"""File assembly: template copy, unit placement, dependencies and descriptors."""
