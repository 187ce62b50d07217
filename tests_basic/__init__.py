import logging

# surface the analysis log in test output
logging.getLogger("pypicket").setLevel(logging.INFO)
