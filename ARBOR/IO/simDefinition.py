''' 
Contains a class meant to read, write and modify simulation definition (.arbor) files, the master dictionary of 
default values for simulation definitions, and a few utility functions for working with string dictionary keys
'''
import random
import re
import shlex
from datetime import datetime
from typing import Dict, List, Tuple, Union

import numpy as np

__all__ = [ "defaultConfigValues", "SimDefinition", "parseVector", "formatVector", "parseBool" ]

#################### Default value dictionary  #########################
defaultConfigValues = {
    "MonteCarlo.numberRuns":                                "1",

    "SimControl.loggingLevel":                              "1",
    "SimControl.startTime":                                 "0",
    "SimControl.endTime":                                   "10",
    "SimControl.timeDiscretization":                        "RK45Adaptive",
    "SimControl.timeStep":                                  "0.001",
    "SimControl.algorithm":                                 "ABA",
    "SimControl.maxSteps":                                  "10000000",
    "SimControl.wallClockLimit":                            "inf",
    "SimControl.TimeStepAdaptation.controller":             "PID",
    "SimControl.TimeStepAdaptation.relTol":                 "0.001",
    "SimControl.TimeStepAdaptation.absTol":                 "0.000001",
    "SimControl.TimeStepAdaptation.minGrowthFactor":        "0.1",
    "SimControl.TimeStepAdaptation.maxGrowthFactor":        "5",
    "SimControl.TimeStepAdaptation.maxTimeStep":            "inf",
    "SimControl.TimeStepAdaptation.minTimeStep":            "1e-10",
    "SimControl.TimeStepAdaptation.PID.coefficients":       "0.075 0.01 0.175",
    "SimControl.TimeStepAdaptation.Elementary.safetyFactor":"0.9",
    "SimControl.Events.rootTolerance":                      "1e-10",
    "SimControl.Events.multipleCrossingPolicy":             "earliest",
    "SimControl.Events.missedEventPolicy":                  "raise",
    "SimControl.Events.interiorSamples":                    "0",
    "SimControl.Output.type":                               "Memory",
    "SimControl.Output.fileName":                           "simulationResults.csv",
    "SimControl.Output.format":                             "fixed",
    "SimControl.Output.precision":                          "6",
    "SimControl.Output.flushInterval":                      "100",
    "SimControl.Output.initialCapacity":                    "64",

    "Environment.epoch":                                "0",
    "Environment.gravityGradient":                      "False",
    "Environment.Gravity.model":                        "Constant",
    "Environment.Gravity.vector":                       "(0 0 -9.80665)",
    "Environment.Gravity.mu":                           "3.986004418e14",
    "Environment.MagneticField.model":                  "None",
    "Environment.MagneticField.vector":                 "(0 0 0)",
    "Environment.MagneticField.gaussCoefficients":      "(-29554.63 -1669.05 5077.99)",
    "Environment.MagneticField.referenceRadius":        "6.3712e6",
    "Environment.Ephemeris.model":                      "Fixed",
    "Environment.Ephemeris.position":                   "(0 0 0)",
    "Environment.Ephemeris.rotationAxis":               "(0 0 1)",
    "Environment.Ephemeris.rotationRate":               "7.2921159e-5",

    "Base.name":                                        "base",

    "Revolute.axis":                                    "(0 0 1)",
    "Revolute.springConstant":                          "0",
    "Revolute.damping":                                 "0",
    "Revolute.equilibrium":                             "0",
    "Revolute.constantForce":                           "0",
    "Revolute.position":                                "0",
    "Revolute.velocity":                                "0",

    "Prismatic.axis":                                   "(0 0 1)",
    "Prismatic.springConstant":                         "0",
    "Prismatic.damping":                                "0",
    "Prismatic.equilibrium":                            "0",
    "Prismatic.constantForce":                          "0",
    "Prismatic.position":                               "0",
    "Prismatic.velocity":                               "0",

    "Floating.springConstant":                          "(0 0 0 0 0 0)",
    "Floating.damping":                                 "(0 0 0 0 0 0)",
    "Floating.equilibrium":                             "(0 0 0 0 0 0)",
    "Floating.constantForce":                           "(0 0 0 0 0 0)",
    "Floating.position":                                "(0 0 0 1 0 0 0)",
    "Floating.velocity":                                "(0 0 0 0 0 0)",

    "PeriodicEvent.phase":                              "0",
    "PeriodicEvent.action":                             "printState",
    "ThresholdEvent.direction":                         "0",
    "ThresholdEvent.action":                            "terminate",
    "ThresholdEvent.restitution":                       "1",
}

# Connection transforms default to the identity for all joint types
for jointClass in [ "Revolute", "Prismatic", "Floating" ]:
    for side in [ "innerTransform", "outerTransform" ]:
        defaultConfigValues["{}.{}.rotation".format(jointClass, side)] = "(1 0 0 0 1 0 0 0 1)"
        defaultConfigValues["{}.{}.translation".format(jointClass, side)] = "(0 0 0)"

#################### Value parsing/formatting ##########################
def parseVector(string: str) -> np.ndarray:
    '''
        Parses space-separated numbers, optionally surrounded by parentheses, into a numpy array
        >>> parseVector("(1 2 3)")
        array([1., 2., 3.])
    '''
    stripped = string.strip()
    if len(stripped) > 1 and stripped[0] == "(" and stripped[-1] == ")":
        stripped = stripped[1:-1]
    components = stripped.replace(",", " ").split()
    if len(components) == 0:
        raise ValueError("Unable to parse a vector from: '{}'".format(string))
    return np.array([ float(x) for x in components ])

def formatVector(vector) -> str:
    ''' Inverse of parseVector. Uses repr() so that values survive a write/read round trip exactly '''
    return "(" + " ".join(repr(float(x)) for x in vector) + ")"

def parseBool(string: str) -> bool:
    value = string.strip().lower()
    if value in ("y", "yes", "t", "true", "on", "1"):
        return True
    elif value in ("n", "no", "f", "false", "off", "0"):
        return False
    else:
        raise ValueError("Invalid truth value: {}".format(string))

simDefinitionHelpMessage = \
"""
    All non-empty, non-comment lines are expected to end in either:
    {   (dictionary start)
    }   (dictionary end)
    
    Or to contain a space-separated key-value pair:
    key value
"""
class SimDefinition():
    
    #### Parsing / Initialization ####
    def __init__(self, fileName=None, dictionary=None, disableDistributionSampling=False, silent=False, defaultDict=None):
        '''
        Parse simulation definition files into a dictionary of string values accessible by string keys.

        Inputs:
            * fileName: (str) path to simulation definition file
            * dictionary: (dict[str,str]) if not providing a fileName, provide a pre-parsed dictionary equivalent to a simulation definition file
            * disableDistributionSampling: (bool) Turn Monte Carlo sampling of normally-distributed parameters on/off
            * silent: (bool) Console output control
            * defaultDict: (dict[str,str] provide a custom dictionary of default values. If none is provided, defaultConfigValues is used.)
        
        Example:
            The file contents:  
                'SimControl{  
                    &nbsp;&nbsp;&nbsp;&nbsp;timeDiscretization RK4;  
                }'  
            Would be parsed into a single-key Python dictionary, stored in self.dict:  
            `{ "SimControl.timeDiscretization": "RK4"}`
        
        '''
        self.silent = silent
        ''' Boolean, controls console output '''

        self.disableDistributionSampling = disableDistributionSampling
        ''' Boolean - controls whether parameters which have standard deviations specified are actually sampled from a normal distribution. If True, the mean value is always returned. Chief use case for disabling sampling: Checking simulation convergence as the time step / target error is decreased. '''

        self.dict = None # type: Dict[str:str]
        ''' Main dictionary of values, usually populated from a simulation definition file '''

        self.defaultDict = None
        ''' Holds all of the defined default values. These will fill in for missing values in self.dict. Unless a different dictionary is specified, will hold a reference to `defaultConfigValues` '''
        
        self.monteCarloLogger = None 
        ''' Filled in by `ARBOR.SimulationRunners.MonteCarlo.runMonteCarloSimulation` if running  Monte Carlo simulation. Type: `ARBOR.IO.Logging.MonteCarloLogger` '''

        # Assign default dictionary
        if defaultDict == None:
            self.defaultDict = defaultConfigValues
        else:
            self.defaultDict = defaultDict

        # Parse/Assign main values dictionary
        if fileName != None:
            self._parseSimDefinitionFile(fileName)
        elif dictionary != None:
            self.dict = dictionary
            self.fileName=fileName
        else:
            raise ValueError("No fileName or dictionary provided to initialize the SimDefinition")

        # Initialize tracking of default values used and unaccessed keys
        self._resetUsedAndUnusedKeyTrackers()

        # Check if any probabilistic keys exist
        containsProbabilisticValues = False
        for key in self.dict:
            if "_stdDev" == key[-7:]:
                containsProbabilisticValues = True

        # Initialize instance of random.Random for Monte Carlo sampling
        if not disableDistributionSampling:
            try:
                randomSeed = int(self.getValue("MonteCarlo.randomSeed"))
            except KeyError:
                randomSeed = random.randrange(1000000)
            
            if not silent and containsProbabilisticValues:
                print("Monte Carlo random seed: {}".format(randomSeed))
                
            self.rng = random.Random(randomSeed)
            ''' Instace of random.Random owned by this instance of SimDefinition. Random seed can be specified by the MonteCarlo.randomSeed parameter. Used for sampling all normal distributions for parameters that have std dev specified. '''

    def setRandomSeed(self, seed):
        ''' Replaces the random number generator used to sample normally-distributed parameters. Monte Carlo runs use one seed per run '''
        self.rng = random.Random(seed)
        self.dict["MonteCarlo.randomSeed"] = str(seed)

    def _parseDictionaryContents(self, workingText, startLine, currDictName, allowKeyOverwriting=False) -> int:
        ''' 
            Parses an individual subdictionary in a simdefinition file.
            Calls itself recursively to parse further sub dictionaries.
            Saves parsed key-value pairs to self.dict

            Returns index of next line to parse
        '''
        i = startLine

        while i < len(workingText):
            line = workingText[i]
            
            if line.split()[0] == "!create":
                # Parse derived subdictionary
                i = self._parseDerivedDictionary(workingText, i, currDictName)

            elif line.strip()[-1] == '{':
                # Parse regular Subdictionary
                subDictName = line.strip()[:-1] # Remove whitespace and dict start bracket
                
                # Recursive call to parse subdictionary
                if currDictName == "":
                    i = self._parseDictionaryContents(workingText, i+1, subDictName, allowKeyOverwriting)
                else:
                    i = self._parseDictionaryContents(workingText, i+1, currDictName + "." + subDictName, allowKeyOverwriting)

            elif line.strip() == '}':
                #End current dictionary - continue parsing at next line
                return i
                        
            elif len(line.split()) > 1:
                #Add a key value pair
                keyVal = line.split()
                
                # Save the space-separated key-value pair
                key = keyVal[0]
                value = " ".join(keyVal[1:])
                if currDictName == "":
                    keyString = key
                else:
                    keyString = currDictName + "." + key

                if not keyString in self.dict or allowKeyOverwriting:
                    self.dict[keyString] = value
                else:
                    raise ValueError("Duplicate Key: " + keyString + " in File: " + self.fileName)
            
            else:
                # Error: Line not recognized as a dict start/end or a key/value pair
                print(simDefinitionHelpMessage)
                raise ValueError("Problem reading line {}".format(line))

            # Next line
            i += 1

    def _parseDerivedDictionary(self, workingText, initializationLine, currDictName) -> int:
        '''
            Parse a 'derived' subdictionary, defined with the !create command in .arbor files

            Inputs:
                workingText: (list[str]) lines of text in .arbor file
                initializationLine: (int) index of line defining the derived dictionary to be parsed in workingText
                currDictName: (str) name of the dictionary containing the derived dictionary to be parsed. "" if at root level

            Returns:
                (int): index of the last line in the derived subdictionary
        '''
        # workingText[initializationLine] should be something like:
            # '    !create SubDictionary2 from Dictionary1.SubDictionary1{'
        definitionLine = workingText[initializationLine].split()
        if currDictName == '':
            derivedDictName = definitionLine[1]
        else:
            derivedDictName = currDictName + '.' + definitionLine[1]

        # Parent dict is last command. Remove opening curly bracket (last character)
        parentDictName = definitionLine[-1][:-1]

        # Fill out temporary dict, after applying all modifiers, add values to main self.dict
        derivedDict = {}

        #### Get keys from parent dict ####
        keysInParentDict = self.getSubKeys(parentDictName)
        
        if len(keysInParentDict) == 0:
            raise ValueError("ERROR: Dictionary to derive from: {} is not defined before {} in {}.".format(parentDictName, derivedDictName, self.fileName))

        for parentKey in keysInParentDict:
            key = parentKey.replace(parentDictName, derivedDictName)
            derivedDict[key] = self.dict[parentKey]

        #### Apply additional commands ####
        i = initializationLine + 1
        while i < len(workingText):
            line = workingText[i]
            possibleCommand = line.split()[0]

            if possibleCommand == "!replace":
                # Replace some text in the keys/values of the derived dictionary
                replaceCommand = shlex.split(line)

                # Get string to replace (w/o quotations)
                toReplace = replaceCommand[1].replace("'", "")
                toReplace = toReplace.replace('"', "")

                # Get string to replace it with (w/o quotation)
                replaceWith = replaceCommand[-1].replace("'", "")
                replaceWith = replaceWith.replace('"', "")

                derivedDictAfterReplace = {}
                for key in derivedDict:
                    newKey = key.replace(toReplace, replaceWith)
                    # .pop() gets the old value and also deletes it from the dictionary
                    newValue = derivedDict[key].replace(toReplace, replaceWith)
                    derivedDictAfterReplace[newKey] = newValue

                derivedDict = derivedDictAfterReplace

            elif possibleCommand == "!removeKeysContaining":
                removeCommand = shlex.split(line)
                stringToDelete = removeCommand[1]

                # Search for and remove any keys that contain stringToDelete
                keysToDelete = []
                for key in derivedDict:
                    if stringToDelete in key:
                        keysToDelete.append(key)

                for key in keysToDelete:
                    del derivedDict[key]                

            elif line[0] != "!":
                # Done commands - let the regular parser handle the rest
                break

            else:
                raise ValueError("Command: {} not implemented. Try using !replace or !removeKeysContaining".format(line.split()[0]))

            i += 1

        #### Add derivedDict values to self.dict ####
        for key in derivedDict:
            # Make sure we don't clobber existing values with poorly thought-out replace commands
            if key not in self.dict:
                self.dict[key] = derivedDict[key]
            else:
                raise ValueError("Derived dict key {} already exists".format(key, self.fileName))

        #### Parse any regular values in derived dict ####
        return self._parseDictionaryContents(workingText, i, derivedDictName, allowKeyOverwriting=True)

    def _parseSimDefinitionFile(self, fileName):
        self.fileName = fileName
        self.dict = {}
        
        # Read all of the file's contents
        with open(fileName, "r") as file:
            workingText = file.read()
        
        # Remove comments
        comment = re.compile("#.*") 
        workingText = re.sub(comment, "", workingText)
        
        # Remove blank lines
        workingText = [line for line in workingText.split('\n') if line.strip() != '']
        
        # Start recursive parse by asking to parse the root-level dictionary
        self._parseDictionaryContents(workingText, 0, "")

    #### Normal Usage ####
    def getValue(self, key: str) -> str:
        """
            Input:
                Key should be a string of format "DictionaryName.SubdictionaryName.Key"
            Output:
                Always returns a string value
                Returns value from defaultConfigValues if key not present in current SimDefinition's dictionary

                Normal Distribution Sampling:
                    If (key + "_stdDev") exists and the value being returned is a scalar or Vector value, returns a scalar or vector sampled from a normal distribution
                        Where the mean of the normal distribution is taken to be the value of 'key' and the standard deviation of the distribution is the value of 'key_stdDev'
                        For a vector value, a vector of standard deviations is expected
                    For repeatable sampling, set the value "MonteCarlo.randomSeed" in the file loaded by this class
        """
        # Remove any whitespace from the key
        key = key.strip()

        ### Find string/mean value ###
        if self.dict.__contains__(key):
            stringValue = self.dict[key]

            if key in self.unaccessedFields: # Track which keys are accessed
                self.unaccessedFields.remove(key)
        elif key in self.defaultDict:
            stringValue = self.defaultDict[key]
            self.defaultValuesUsed.add(key)
        else:
            # Check if there's a class-based default value to return
            classBasedDefaultValue = self._getClassBasedDefaultValue(key)
            
            if classBasedDefaultValue != None:
                stringValue = classBasedDefaultValue
            else:
                raise KeyError("Key: " + key + " not found in {} or default config values".format(self.fileName))

        ### Sample from normal distribution if required ###
        if not self.disableDistributionSampling:
            ### Check if a standard deviation has been specified. If so, sample a gaussian distribution before returning the value ###
            stdDevKey = key + "_stdDev"

            # Scalar values
            try:
                mu = float(stringValue)            
                sigma = float(self.getValue(stdDevKey))

                sampledValue = self.rng.gauss(mu, sigma)

                logLine = "Sampling scalar parameter: {}, value: {:1.3f}".format(key, sampledValue)
                if self.monteCarloLogger != None:
                    self.monteCarloLogger.log(logLine)
                elif not self.silent:
                    print(logLine)


                return str(sampledValue)
            except (KeyError, ValueError):
                # KeyError throws if stdDevKey not present
                # ValueError throws if either conversion to float fails
                pass

            # Vector values
            try:
                muVec = parseVector(stringValue)
                sigmaVec = parseVector(self.getValue(stdDevKey))
            except (KeyError, ValueError):
                # KeyError throws if stdDevKey not present
                # ValueError throws if either conversion to a vector fails
                muVec = None

            if muVec is not None:
                if len(muVec) != len(sigmaVec):
                    raise ValueError("Vector parameter: {} has {} components, but its standard deviation has {}".format(key, len(muVec), len(sigmaVec)))

                sampledVec = [ self.rng.gauss(mu, sigma) for mu, sigma in zip(muVec, sigmaVec) ]

                logLine = "Sampling vector parameter: {}, value: ({})".format(key, " ".join("{:1.3f}".format(x) for x in sampledVec))
                if self.monteCarloLogger != None:
                    self.monteCarloLogger.log(logLine)
                elif not self.silent:
                    print(logLine)

                return formatVector(sampledVec)

        ### Otherwise return original string value ###
        return stringValue

    def setValue(self, key: str, value) -> None:
        '''
            Will add the entry if it's not present
        '''
        # Remove whitespace
        key = key.strip()
        
        self.dict[key] = value

    def removeKey(self, key: str):
        if key in self.dict:
            return self.dict.pop(key)
        else:
            print("Warning: " + key + " not found, can't delete")
            return None

    def setIfAbsent(self, key: str, value):
        ''' Sets a value, only if it doesn't currently exist in the dictionary '''
        if not key in self.dict:
            self.setValue(key, value)

    def writeToFile(self, fileName: str, writeHeader=True) -> None:
        ''' 
            Write a (potentially modified) sim definition to file.
            Newly written file will not contain any comments! 
        '''
        self.fileName = fileName

        with open(fileName, 'w') as file:
            # Extract the fileName from the fileName variable, which may contain other folder names
            dictName = re.sub("^.*/", "", fileName)

            # Write Header
            if writeHeader:
                file.write("# ARBOR\n")
                file.write("# File: {}\n".format(fileName))
                file.write("# Autowritten on: " + str(datetime.now()) + "\n")

            # Sorting the keys before iterating through them ensures that dictionaries will be stored together
            sortedDict = sorted(self.dict.items())
            currDicts = []
            for key in sortedDict:
                key = key[0]
                dicts = key.split('.')[:-1]

                # Need to get be in the appropriate dictionary before writing the key, value pair
                if dicts != currDicts:
                    
                    #Close any uneeded dictionaries
                    dictDepth = currDicts.__len__()
                    while dictDepth > 0:
                        if dictDepth > dicts.__len__():
                            file.write("\t"*(dictDepth-1) + "}\n")
                        elif currDicts[dictDepth-1] != dicts[dictDepth-1]:
                            file.write("\t"*(dictDepth-1) + "}\n")
                        else:
                            break
                        
                        dictDepth = dictDepth - 1

                    openedNewDict = False

                    #Open any new dictionaries
                    while dictDepth < dicts.__len__():
                        newDict = dicts[dictDepth]
                        file.write("\n" + "\t" * dictDepth + newDict + "{\n")
                        dictDepth = dictDepth + 1
                        openedNewDict = True
                    
                    if not openedNewDict:
                        # If no new dictionary was openend after closing unneeded ones, add a spacing line before writing keys/values
                        file.write("\n")

                    currDicts = dicts

                #Add the key, value
                dictDepth = currDicts.__len__()
                realKey = re.sub(r"^([^\.]*\.)+", "", key)
                file.write( "\t"*dictDepth + realKey + "\t" + self.dict[key] + "\n")

            #Close any open dictionaries
            dictDepth = currDicts.__len__()
            while dictDepth > 0:
                dictDepth = dictDepth - 1
                file.write("\t"*dictDepth + "}\n")

    #### Introspection / Key Gymnastics ####
    def findKeysContaining(self, keyContains: List[str]) -> List[str]:
        '''
            Returns a list of all keys that contain any of the strings in keyContains
            
            ## Example  
                findKeysContaining(["class"]) ->  
                [ "Joints.shoulder.class", "Joints.elbow.class", "Joints.wrist.class", etc... ]
        '''
        matchingKeys = []
        for key in self.dict.keys():
            match = True
            for str in keyContains:
                if str not in key:
                    match = False
                    break
            
            if match:
                matchingKeys.append(key)
        
        if len(matchingKeys) > 0:
            return matchingKeys
        else:
            return None

    def getSubKeys(self, key: str) -> List[str]:
        '''
            Returns a list of all keys that are children of key

            ## Example  
                getSubKeys("Joints.elbow") ->  
                [ "Joints.elbow.class", "Joints.elbow.axis", "Joints.elbow.innerTransform.translation", etc... ]
        '''
        subKeys = []
        for currentKey in self.dict.keys():
            if isSubKey(key, currentKey):
                subKeys.append(currentKey)
        
        return subKeys

    def getImmediateSubKeys(self, key: str) -> List[str]:
        """ 
            Returns all keys that are immediate children of the parentKey (one 'level' lower)
            
            .. note:: Will not return subdictionaries, only keys that have a value associated with them. Use self.getImmediateSubDicts() to discover sub-dictionaries

            ## Example:
                getImmediateSubKeys("Joints.elbow") ->  
                [ "Joints.elbow.class", "Joints.elbow.axis", "Joints.elbow.position", etc...]
        """
        results = set()
        for potentialChildKey in self.dict.keys():
            # Iterate through all keys - check if they are children of currentPath
            if isSubKey(key, potentialChildKey):
                # If so, get the part of the key that is the immediate child of currentPath
                immediateSubkey = getImmediateSubKey(key, potentialChildKey)
                
                # If we haven't got it already, save it
                results.add(immediateSubkey)

        return list(results)

    def getImmediateSubDicts(self, key: str) -> List[str]:
        '''
            Returns list of names of immediate subdictionaries

            ## Example
                getImmediateSubDicts("Joints") ->
                [ "Joints.shoulder", "Joints.elbow", "Joints.wrist", etc... ]

            .. note:: This example would not return a dictionary like: "Joints.elbow.innerTransform" because it's not an immediate subdictionary of "Joints"
        '''
        keyLevel = getKeyLevel(key)
        subKeys = self.getSubKeys(key)

        subDictionaries = set()
        for subKey in subKeys:
            subKeyLevel = getKeyLevel(subKey)
            if subKeyLevel - keyLevel > 1:
                # A subkey would have 1 level higher
                # A subkey of a subdictionary would have 2 levels higher - this is what we're looking for
                subDictKey = getParentKeyAtLevel(subKey, keyLevel+1)
                subDictionaries.add(subDictKey)
        
        return list(subDictionaries)

    def _getClassBasedDefaultValue(self, key: str) -> Union[str, None]:
        ''' 
            Returns class-based default value from defaultConfigValues if it exists. Otherwise returns None 
            
            Will attempt to find class-based default values for every longer prefixes of a key:
                key = "Joints.elbow.innerTransform.rotation"
                Attempt1 = "Joints.elbow.innerTransform.class" -> Fail
                Attempt2 = "Joints.elbow.class" -> Revolute -> look up 'Revolute.innerTransform.rotation' in defaultDict -> if there, return it, otherwise return None
        '''
        splitLevel = getKeyLevel(key)

        while splitLevel >= 0:
            prefix, suffix = splitKeyAtLevel(key, splitLevel)
            
            try:
                classKey = prefix + ".class"
                className = self.dict[classKey]                

                # As soon as we arrive at an item with a class, search terminates
                try:
                    classBasedDefaultKey = className + "." + suffix
                    defaultValue = self.defaultDict[classBasedDefaultKey]

                    # Track that we've used a default value
                    self.defaultValuesUsed.add(classBasedDefaultKey)
                    
                    # if the classKey was useful, count it as 'used'
                    if classKey in self.unaccessedFields: 
                        self.unaccessedFields.remove(classKey)
                        
                    return defaultValue
                except KeyError:
                    return None # class-based default value not found
            
            except KeyError:
                pass # prefix.class not present

            # Move one level up the dictionary for next attempt
            splitLevel -= 1
        
        return None

    #### Usage Reporting ####
    def printUnusedKeys(self):
        '''
            Checks which keys in the present simulation definition have not yet been accessed.
            Prints a list of those to the console.
        '''
        if len(self.unaccessedFields) > 0:
            print("\nWarning: The following keys were loaded from: {} but never accessed:".format(self.fileName))
            for key in sorted(self.unaccessedFields):
                value = self.dict[key]
                print("{:<45}{}".format(key+":", value))
            print("")

    def printDefaultValuesUsed(self):
        '''
            Checks which default values have been used since the creation of the current instance of SimDefinition. Prints those to the console.
        '''
        if len(self.defaultValuesUsed):
            print("\nWarning: The following default values were used in this simulation:")
            for key in sorted(self.defaultValuesUsed):
                value = self.defaultDict[key]
                print("{:<45}{}".format(key+":", value))
            print("\nIf this was not intended, override the default values by adding the above information to your simulation definition file.\n")
        
    def _resetUsedAndUnusedKeyTrackers(self):
        # Create a dictionary to keep track of which attributed have been accessed (initially none)
        self.unaccessedFields = set(self.dict.keys())
        # Create a list to track which default values have been used
        self.defaultValuesUsed = set()

    #### Utilities ####
    def __str__(self):
        result = ""
        result += "File: {}\n".format(self.fileName)

        for key, value in self.dict.items():
            result += "{}: {}\n".format(key, value)

        result += "\n"

        return result

    def __eq__ (self, simDef2):
        try:
            if self.dict == simDef2.dict:
                return True
            else:
                return False
        except AttributeError:
            return False

################### Functions for dealing with string keys ########################
def isSubKey(potentialParent:str, potentialChild:str) -> bool:
    """
        ## Example 
        `isSubKey("Base", "Base.name")` -> True
        `isSubKey("SimControl", "Base.name")` -> False
    """
    pLength = len(potentialParent)
    cLength = len(potentialChild)

    if cLength <= pLength:
        return False
    elif potentialChild[:pLength] == potentialParent:
        return True
    else:
        return False

def getKeyLevel(key:str) -> int:
    """
        Sums the number of dots in the key 
        ## Example 
            getKeyLevel("Base") -> 0  
            getKeyLevel("Base.name") -> 1
    """
    if len(key) == 0:
        return -1
    else:
        return len(key.split('.'))-1

def getParentKeyAtLevel(key:str, desiredLevel:int) -> str:
    """
        >>> getParentKeyAtLevel('Joints.elbow.innerTransform.rotation', 0)
        'Joints'
        >>> getParentKeyAtLevel('Joints.elbow.innerTransform.rotation', 1)
        'Joints.elbow'
        >>> getParentKeyAtLevel('Joints.elbow.innerTransform.rotation', 2)
        'Joints.elbow.innerTransform'
    """
    desiredParts = key.split('.')[0:desiredLevel+1]
    return '.'.join(desiredParts)

def getImmediateSubKey(parent, child):
    """ 
        Takes the parent key, adds one level of the child key:  

        ## Example
        >>> getImmediateSubKey('Joints', 'Joints.elbow.axis')
        'Joints.elbow'
    """
    if not isSubKey(parent, child):
        raise ValueError("{} is not a subkey of {}".format(child, parent))

    parentKeyPlusOneLevel, _ = splitKeyAtLevel(child, getKeyLevel(parent)+1)
    return parentKeyPlusOneLevel

def splitKeyAtLevel(key:str, prefixLevel:int) -> Tuple[str]:
    ''' 
        0 <= level <= getKeyLevel(key)
        ### Example
        >>> splitKeyAtLevel("Joints", 0)
        ('Joints', '')
        >>> splitKeyAtLevel("Joints.elbow", 0)
        ('Joints', 'elbow')
        >>> splitKeyAtLevel("Joints.elbow.position", 1)
        ('Joints.elbow', 'position')
    '''
    n = prefixLevel + 1
    keyNames = key.split('.')
    prefix = ".".join(keyNames[:n])
    suffix = ".".join(keyNames[n:])
    return prefix, suffix
