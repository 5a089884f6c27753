"""
Train Subpackage

    - optimizer.py: Adam-updated SGD with an explicit reset policy
    - trainer.py: Cyclic train/evaluate driver and its log
"""
