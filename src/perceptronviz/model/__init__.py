"""
The MODEL layer contains pure data structures and the learning logic.
It has NO knowledge of the GUI (Qt) or of any chart rendering.
It deals with parsing, the perceptron rule, and 2-D geometry.
"""
