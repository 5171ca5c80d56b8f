"""High level code for driving a tumor/normal analysis pipeline.

This structures processing steps into the following modules:

  - steps.py: Validate the requested steps and decide which stages run.
  - run_info.py: Read sample manifests and write per-stage manifests.
  - merge.py: Unify the runs of a sample into one BAM file.
  - region.py: Genomic intervals to scatter variant calling over.
  - main.py: Build and run the dataflow graph for the active steps.
"""
