"""
Models Subpackage

    - layers.py: Dense / Recurrent / Dropout / LogSoftmax descriptors
    - sequence_model.py: Executor that turns descriptors into a torch model
"""
