"""Producers of dependency events: class files, archives, trees and POMs."""
